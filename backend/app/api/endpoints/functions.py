"""JSON handlers for the privileged account operations.

They answer ``{"error": ...}`` bodies rather than FastAPI's ``detail`` so
browser callers can treat them like the hosted edge functions they replace.
"""

from __future__ import annotations

import json
import logging
from typing import Callable

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.settings import settings
from app.services.demo_accounts import setup_demo_accounts
from app.services.invitations import invite_staff
from app.services.supabase_admin import (
    SupabaseAdminClient,
    SupabaseAdminError,
    get_auth_admin,
    get_auth_admin_factory,
)

logger = logging.getLogger(__name__)


router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _json(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


def _client_ip(request: Request) -> str:
    xff = (request.headers.get("x-forwarded-for") or "").strip()
    first = xff.split(",")[0].strip() if xff else ""
    return first or "unknown"


@router.options("/invite-staff")
@router.options("/setup-demo-accounts")
async def functions_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/invite-staff")
async def invite_staff_handler(
    request: Request,
    db: Session = Depends(get_db),
    auth_admin_factory: Callable[[], SupabaseAdminClient] = Depends(get_auth_admin_factory),
) -> JSONResponse:
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else {}
    except ValueError:
        payload = {}
    try:
        result = invite_staff(
            db,
            auth_admin_factory,
            authorization=request.headers.get("authorization"),
            payload=payload,
            ip=_client_ip(request),
        )
    except Exception as exc:
        logger.exception("invite_staff.unexpected_error")
        return _json(500, {"error": str(exc) or "An unexpected error occurred"})
    return _json(result.status_code, result.body)


@router.post("/setup-demo-accounts")
async def setup_demo_accounts_handler(
    db: Session = Depends(get_db),
    auth_admin: SupabaseAdminClient = Depends(get_auth_admin),
) -> JSONResponse:
    if not settings.demo_accounts_enabled:
        return _json(404, {"error": "Demo accounts are disabled"})
    logger.info("demo_accounts.setup.start")
    try:
        body = setup_demo_accounts(db, auth_admin)
    except SupabaseAdminError as exc:
        db.rollback()
        logger.error("demo_accounts.setup.failed error=%s", exc.message)
        return _json(500, {"error": exc.message})
    return _json(200, body)
