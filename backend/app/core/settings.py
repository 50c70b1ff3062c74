import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _getenv_csv_list(name: str, default: list[str]) -> list[str]:
    raw = _getenv(name)
    if raw is None:
        return list(default)
    parts = [p.strip().lower() for p in raw.split(",")]
    return [p for p in parts if p]


DEFAULT_ALLOWED_MIME_TYPES = ["image/jpeg", "image/png", "image/webp", "application/pdf"]


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./helpdesk.db") or "sqlite:///./helpdesk.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)

        self.supabase_url = _getenv("SUPABASE_URL") or _getenv("VITE_SUPABASE_URL")
        self.supabase_anon_key = _getenv("SUPABASE_ANON_KEY") or _getenv("VITE_SUPABASE_PUBLISHABLE_KEY")
        self.supabase_service_role_key = _getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.supabase_jwt_secret = _getenv("SUPABASE_JWT_SECRET")
        self.supabase_jwt_audience = _getenv("SUPABASE_JWT_AUD", "authenticated")
        self.supabase_jwt_issuer = _getenv("SUPABASE_JWT_ISSUER")

        self.storage_bucket = _getenv("STORAGE_BUCKET", "ticket-attachments") or "ticket-attachments"
        self.storage_max_file_bytes = _getenv_int("STORAGE_MAX_FILE_BYTES", 5 * 1024 * 1024)
        self.storage_allowed_mime_types = _getenv_csv_list("STORAGE_ALLOWED_MIME_TYPES", DEFAULT_ALLOWED_MIME_TYPES)
        self.storage_signed_url_ttl_s = _getenv_int("STORAGE_SIGNED_URL_TTL_S", 3600)

        self.demo_accounts_enabled = _getenv_bool(
            "DEMO_ACCOUNTS_ENABLED",
            default=(self.environment != "production"),
        )
        self.demo_admin_email = _getenv("DEMO_ADMIN_EMAIL", "admin@example.com") or "admin@example.com"
        self.demo_admin_password = _getenv("DEMO_ADMIN_PASSWORD", "admin123") or "admin123"
        self.demo_staff_email = _getenv("DEMO_STAFF_EMAIL", "staff@example.com") or "staff@example.com"
        self.demo_staff_password = _getenv("DEMO_STAFF_PASSWORD", "staff123") or "staff123"

        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.frontend_url = _getenv("FRONTEND_URL", "http://localhost:5173") or "http://localhost:5173"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return [self.frontend_url, "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
