from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import requests

from app.core.settings import settings

logger = logging.getLogger(__name__)


class SupabaseAdminError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"Supabase auth error ({resp.status_code})"


class SupabaseAdminClient:
    """Thin wrapper over the Supabase Auth admin REST API.

    Every call is made with the service-role key, so callers must run their
    own permission checks first.
    """

    def __init__(self, supabase_url: str, service_role_key: str, *, timeout_s: float = 15) -> None:
        self._base = supabase_url.rstrip("/")
        self._key = service_role_key
        self._timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._key,
            "authorization": f"Bearer {self._key}",
            "accept": "application/json",
        }

    def list_users(self, *, per_page: int = 1000) -> list[AuthUser]:
        out: list[AuthUser] = []
        page = 1
        while True:
            try:
                resp = requests.get(
                    f"{self._base}/auth/v1/admin/users",
                    params={"page": page, "per_page": per_page},
                    headers=self._headers(),
                    timeout=self._timeout_s,
                )
            except requests.RequestException as exc:
                raise SupabaseAdminError(f"Supabase auth unreachable: {exc}") from exc
            if resp.status_code >= 400:
                raise SupabaseAdminError(_error_message(resp), resp.status_code)
            body = resp.json() or {}
            users = body.get("users") if isinstance(body, dict) else body
            users = users if isinstance(users, list) else []
            for u in users:
                if isinstance(u, dict) and u.get("id"):
                    out.append(AuthUser(id=str(u["id"]), email=str(u.get("email") or "")))
            if len(users) < per_page:
                return out
            page += 1

    def create_user(self, *, email: str, password: str, name: str | None = None) -> AuthUser:
        payload: dict[str, Any] = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {"name": name or ""},
        }
        try:
            resp = requests.post(
                f"{self._base}/auth/v1/admin/users",
                json=payload,
                headers={**self._headers(), "content-type": "application/json"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise SupabaseAdminError(f"Supabase auth unreachable: {exc}") from exc
        if resp.status_code >= 400:
            raise SupabaseAdminError(_error_message(resp), resp.status_code)
        body = resp.json() or {}
        user = body.get("user") if isinstance(body.get("user"), dict) else body
        user_id = str(user.get("id") or "").strip()
        if not user_id:
            raise SupabaseAdminError("Failed to create user", resp.status_code)
        logger.info("supabase_admin.create_user.ok email=%s", email)
        return AuthUser(id=user_id, email=str(user.get("email") or email))


def get_auth_admin() -> SupabaseAdminClient:
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise SupabaseAdminError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not configured", 500)
    return SupabaseAdminClient(settings.supabase_url, settings.supabase_service_role_key)


def get_auth_admin_factory() -> Callable[[], SupabaseAdminClient]:
    """Defer building the admin client until a handler has authorized the caller."""
    return get_auth_admin
