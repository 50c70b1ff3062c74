import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.endpoints import account, admin, functions, public, tickets
from app.core.database import Base, engine
from app.core.settings import settings
from app.models import media_asset, message, profile, security_audit_log, ticket, user_role  # noqa: F401
from app.services.storage import StorageError
from app.services.supabase_admin import SupabaseAdminError

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("helpdesk")

app = FastAPI(title="Student Helpdesk API")

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def startup() -> None:
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)
    if not settings.supabase_url:
        logger.warning("startup.config SUPABASE_URL is not set; bearer tokens cannot be verified")
    logger.info("startup.ready environment=%s", settings.environment)


@app.exception_handler(SupabaseAdminError)
async def supabase_admin_error_handler(_request: Request, exc: SupabaseAdminError) -> JSONResponse:
    logger.error("supabase_admin.error status=%s message=%s", exc.status_code, exc.message)
    return JSONResponse(
        status_code=500,
        content={"error": exc.message},
        headers=functions.CORS_HEADERS,
    )


@app.exception_handler(StorageError)
async def storage_error_handler(_request: Request, exc: StorageError) -> JSONResponse:
    logger.error("storage.error status=%s message=%s", exc.status_code, exc.message)
    # Raised from get_storage only when the service itself is misconfigured.
    return JSONResponse(status_code=500, content={"detail": exc.message})


# API Routes
app.include_router(public.router, prefix="/api", tags=["public"])
app.include_router(account.router, prefix="/api", tags=["account"])
app.include_router(tickets.router, prefix="/api", tags=["tickets"])
app.include_router(admin.router, prefix="/api", tags=["admin"])
app.include_router(functions.router, prefix="/functions/v1", tags=["functions"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
