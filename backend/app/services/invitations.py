"""Privileged account creation.

``invite_staff`` creates a staff or admin account on behalf of an existing
staff/admin caller. Every outcome, including each rejection, is written to the
security audit log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import InvalidTokenError, decode_access_token
from app.models.user_role import AppRole
from app.services.audit import log_security_event
from app.services.policies import can_invite_staff, ensure_profile, grant_role, has_role
from app.services.supabase_admin import SupabaseAdminClient, SupabaseAdminError

logger = logging.getLogger(__name__)


INVITABLE_ROLES = {AppRole.STAFF.value, AppRole.ADMIN.value}


@dataclass
class HandlerResult:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


def _error(status_code: int, message: str) -> HandlerResult:
    return HandlerResult(status_code=status_code, body={"error": message})


def _bearer(authorization: str | None) -> str | None:
    raw = (authorization or "").strip()
    if not raw:
        return None
    if raw.lower().startswith("bearer "):
        raw = raw.split(" ", 1)[1].strip()
    return raw or None


def invite_staff(
    db: Session,
    auth_admin_factory: Callable[[], SupabaseAdminClient],
    *,
    authorization: str | None,
    payload: dict[str, Any] | None,
    ip: str | None,
) -> HandlerResult:
    ip = ip or "unknown"

    token = _bearer(authorization)
    if token is None:
        logger.error("invite_staff.no_auth ip=%s", ip)
        log_security_event(db, None, "invite_staff_no_auth", {"ip": ip})
        return _error(401, "Unauthorized")

    try:
        claims = decode_access_token(token)
    except InvalidTokenError as exc:
        logger.error("invite_staff.invalid_token ip=%s error=%s", ip, exc)
        log_security_event(db, None, "invite_staff_invalid_token", {"error": str(exc), "ip": ip})
        return _error(401, "Unauthorized")

    caller_id = str(claims.get("sub") or "").strip()
    caller_email = str(claims.get("email") or "").strip()

    if not can_invite_staff(db, caller_id):
        logger.error("invite_staff.forbidden user_id=%s", caller_id)
        log_security_event(
            db,
            caller_id,
            "invite_staff_privilege_escalation_attempt",
            {"attempted_by": caller_email, "ip": ip},
        )
        return _error(403, "Forbidden: Only staff and admin can invite staff members")

    payload = payload if isinstance(payload, dict) else {}
    email = str(payload.get("email") or "").strip()
    password = str(payload.get("password") or "")
    name = str(payload.get("name") or "").strip()
    role = payload.get("role")

    if not isinstance(role, str) or role not in INVITABLE_ROLES:
        log_security_event(
            db,
            caller_id,
            "invite_staff_invalid_role",
            {"attempted_role": payload.get("role"), "attempted_by": caller_email},
        )
        return _error(400, "Invalid role")

    if role == AppRole.ADMIN.value and not has_role(db, caller_id, AppRole.ADMIN):
        logger.error("invite_staff.admin_escalation user_id=%s", caller_id)
        log_security_event(
            db,
            caller_id,
            "invite_admin_escalation_attempt",
            {"attempted_by": caller_email, "target_email": email, "ip": ip},
        )
        return _error(403, "Forbidden: Only admins can create admin accounts")

    try:
        auth_admin = auth_admin_factory()
    except SupabaseAdminError as exc:
        logger.error("invite_staff.auth_admin_unavailable error=%s", exc.message)
        log_security_event(
            db,
            caller_id,
            "invite_staff_creation_failed",
            {"error": exc.message, "target_email": email},
        )
        return _error(500, exc.message)

    try:
        new_user = auth_admin.create_user(email=email, password=password, name=name)
    except SupabaseAdminError as exc:
        logger.error("invite_staff.create_failed email=%s error=%s", email, exc.message)
        log_security_event(
            db,
            caller_id,
            "invite_staff_creation_failed",
            {"error": exc.message, "target_email": email},
        )
        return _error(400, exc.message or "Failed to create user")

    try:
        ensure_profile(db, new_user.id, new_user.email or email, name)
        grant_role(db, new_user.id, AppRole(role))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("invite_staff.role_assignment_failed user_id=%s", new_user.id)
        log_security_event(
            db,
            caller_id,
            "invite_staff_role_assignment_failed",
            {"error": str(exc), "target_email": email, "target_user_id": new_user.id},
        )
        return _error(500, "User created but role assignment failed")

    log_security_event(
        db,
        caller_id,
        "invite_staff_success",
        {"created_by": caller_email, "target_email": email, "target_user_id": new_user.id, "role": role},
    )
    logger.info("invite_staff.success email=%s role=%s", email, role)
    return HandlerResult(
        status_code=200,
        body={"success": True, "user": {"id": new_user.id, "email": new_user.email or email}},
    )
