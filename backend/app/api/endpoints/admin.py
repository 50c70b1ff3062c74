from __future__ import annotations

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin
from app.models.ticket import TicketStatus
from app.schemas.admin import AnalyticsResponse, AuditLogResponse, StaffMember
from app.services.analytics import AnalyticsFilters, build_dashboard, list_staff
from app.services.audit import list_security_events


router = APIRouter(dependencies=[Depends(require_admin)])


def _parse_status(raw: str | None) -> TicketStatus | None:
    value = (raw or "all").strip().lower()
    if value == "all":
        return None
    try:
        return TicketStatus(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid status filter")


@router.get("/admin/analytics", response_model=AnalyticsResponse)
async def admin_analytics(
    date_from: date | None = None,
    date_to: date | None = None,
    status: str = "all",
    staff_id: str | None = None,
    db: Session = Depends(get_db),
) -> AnalyticsResponse:
    defaults = AnalyticsFilters.default()
    filters = AnalyticsFilters(
        date_from=date_from or defaults.date_from,
        date_to=date_to or defaults.date_to,
        status=_parse_status(status),
        staff_id=(staff_id or "").strip() or None,
    )
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise HTTPException(status_code=400, detail="date_from must be on or before date_to")

    dashboard = build_dashboard(db, filters)
    return AnalyticsResponse(
        date_from=filters.date_from.isoformat() if filters.date_from else None,
        date_to=filters.date_to.isoformat() if filters.date_to else None,
        status=filters.status.value if filters.status else "all",
        staff_id=filters.staff_id,
        **dashboard,
    )


@router.get("/admin/staff", response_model=List[StaffMember])
async def admin_list_staff(db: Session = Depends(get_db)):
    return list_staff(db)


@router.get("/admin/audit-log", response_model=List[AuditLogResponse])
async def admin_audit_log(
    action: str | None = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return list_security_events(db, action=(action or "").strip() or None, limit=limit, offset=offset)
