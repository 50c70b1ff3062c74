from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.security_audit_log import SecurityAuditLog

logger = logging.getLogger(__name__)


def log_security_event(
    db: Session,
    user_id: str | None,
    action: str,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> SecurityAuditLog | None:
    """Append an audit record and commit it.

    Write failures are logged and swallowed so the caller's own response is
    never replaced by an audit error.
    """
    details = dict(details or {})
    ip = ip_address if ip_address is not None else details.get("ip")
    entry = SecurityAuditLog(user_id=user_id, action=action, details=details, ip_address=ip)
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("audit.write_failed action=%s user_id=%s", action, user_id)
        return None
    logger.info("audit.recorded action=%s user_id=%s", action, user_id)
    return entry


def list_security_events(db: Session, *, action: str | None = None, limit: int = 50, offset: int = 0) -> list[SecurityAuditLog]:
    limit = max(1, min(int(limit or 50), 200))
    offset = max(0, int(offset or 0))
    query = db.query(SecurityAuditLog)
    if action:
        query = query.filter(SecurityAuditLog.action == action)
    return (
        query.order_by(SecurityAuditLog.created_at.desc(), SecurityAuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
