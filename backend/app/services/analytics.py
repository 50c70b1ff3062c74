"""Admin dashboard aggregates.

Queries narrow tickets by the dashboard filters; the grouping and statistics
are plain functions over the returned rows so they can be exercised without a
database.
"""

from __future__ import annotations

from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.timeutil import as_utc, utcnow
from app.models.message import Message
from app.models.profile import Profile
from app.models.ticket import Ticket, TicketStatus
from app.models.user_role import UserRole
from app.services.policies import PRIVILEGED_ROLES


DEFAULT_WINDOW_DAYS = 30
COMMON_ISSUES_LIMIT = 10


@dataclass(frozen=True)
class AnalyticsFilters:
    date_from: date | None = None
    date_to: date | None = None
    status: TicketStatus | None = None
    staff_id: str | None = None

    @classmethod
    def default(cls, today: date | None = None) -> "AnalyticsFilters":
        today = today or utcnow().date()
        return cls(date_from=today - timedelta(days=DEFAULT_WINDOW_DAYS), date_to=today)

    def created_bounds(self) -> tuple[datetime | None, datetime | None]:
        start = datetime.combine(self.date_from, time.min, tzinfo=timezone.utc) if self.date_from else None
        end = datetime.combine(self.date_to, time.max, tzinfo=timezone.utc) if self.date_to else None
        return start, end


@dataclass(frozen=True)
class TicketRow:
    id: str
    student_id: str
    subject: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class StaffMessageRow:
    ticket_id: str
    created_at: datetime
    ticket_student_id: str
    ticket_created_at: datetime
    ticket_status: TicketStatus


def _whole_hours(start: datetime, end: datetime) -> int:
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    # Truncate toward zero like a calendar "difference in hours".
    return int(seconds / 3600)


def _to_row(t: Ticket) -> TicketRow:
    return TicketRow(
        id=t.id,
        student_id=t.student_id,
        subject=t.subject,
        status=TicketStatus(t.status),
        created_at=as_utc(t.created_at),
        updated_at=as_utc(t.updated_at or t.created_at),
    )


def _apply_ticket_filters(query, filters: AnalyticsFilters):
    start, end = filters.created_bounds()
    if start is not None:
        query = query.filter(Ticket.created_at >= start)
    if end is not None:
        query = query.filter(Ticket.created_at <= end)
    if filters.status is not None:
        query = query.filter(Ticket.status == filters.status)
    return query


def load_tickets(db: Session, filters: AnalyticsFilters) -> list[TicketRow]:
    query = _apply_ticket_filters(db.query(Ticket), filters)
    if filters.staff_id:
        replied = select(Message.ticket_id).where(Message.sender_id == filters.staff_id)
        query = query.filter(Ticket.id.in_(replied))
    rows = query.order_by(Ticket.created_at.asc(), Ticket.id.asc()).all()
    return [_to_row(t) for t in rows]


def compute_metrics(tickets: Iterable[TicketRow]) -> dict:
    tickets = list(tickets)
    by_status = Counter(t.status for t in tickets)
    completed = [t for t in tickets if t.status == TicketStatus.COMPLETED]
    avg_hours = 0.0
    if completed:
        avg_hours = sum(_whole_hours(t.created_at, t.updated_at) for t in completed) / len(completed)
    return {
        "total": len(tickets),
        "pending": by_status.get(TicketStatus.PENDING, 0),
        "in_progress": by_status.get(TicketStatus.IN_PROGRESS, 0),
        "completed": by_status.get(TicketStatus.COMPLETED, 0),
        "avg_resolution_hours": round(avg_hours, 2),
    }


def ticket_trends(tickets: Iterable[TicketRow]) -> list[dict]:
    per_day: "OrderedDict[date, int]" = OrderedDict()
    for t in sorted(tickets, key=lambda r: r.created_at):
        day = as_utc(t.created_at).date()
        per_day[day] = per_day.get(day, 0) + 1
    return [{"date": d.isoformat(), "label": d.strftime("%b %d"), "count": n} for d, n in per_day.items()]


def common_issues(tickets: Iterable[TicketRow], limit: int = COMMON_ISSUES_LIMIT) -> list[dict]:
    tickets = list(tickets)
    counts = Counter(t.subject for t in tickets)
    total = len(tickets) or 1
    # Counter.most_common keeps first-seen order among equal counts.
    return [
        {"subject": subject, "count": count, "percentage": round(count / total * 100, 2)}
        for subject, count in counts.most_common(limit)
    ]


def summarize_staff(profile_id: str, messages: Iterable[StaffMessageRow]) -> dict:
    messages = list(messages)
    statuses: dict[str, TicketStatus] = {}
    for m in messages:
        statuses[m.ticket_id] = m.ticket_status
    handled = len(statuses)

    response_minutes = [
        (as_utc(m.created_at) - as_utc(m.ticket_created_at)).total_seconds() / 60
        for m in messages
        if m.ticket_student_id != profile_id
    ]
    avg_response = sum(response_minutes) / len(response_minutes) if response_minutes else 0.0

    resolved = sum(1 for s in statuses.values() if s == TicketStatus.COMPLETED)
    rate = round(resolved / handled * 100, 2) if handled else 0.0
    return {
        "tickets_handled": handled,
        "avg_response_minutes": round(avg_response, 2),
        "resolved_count": resolved,
        "resolution_rate": rate,
    }


def list_staff(db: Session) -> list[Profile]:
    staff_ids = select(UserRole.user_id).where(UserRole.role.in_(list(PRIVILEGED_ROLES)))
    return db.query(Profile).filter(Profile.id.in_(staff_ids)).order_by(Profile.name.asc(), Profile.id.asc()).all()


def staff_performance(db: Session, filters: AnalyticsFilters) -> list[dict]:
    profiles = list_staff(db)
    if filters.staff_id:
        profiles = [p for p in profiles if p.id == filters.staff_id]

    out: list[dict] = []
    for profile in profiles:
        query = (
            db.query(Message.ticket_id, Message.created_at, Ticket.student_id, Ticket.created_at, Ticket.status)
            .join(Ticket, Ticket.id == Message.ticket_id)
            .filter(Message.sender_id == profile.id)
        )
        query = _apply_ticket_filters(query, filters)
        rows = [
            StaffMessageRow(
                ticket_id=ticket_id,
                created_at=as_utc(created_at),
                ticket_student_id=student_id,
                ticket_created_at=as_utc(ticket_created_at),
                ticket_status=TicketStatus(status),
            )
            for ticket_id, created_at, student_id, ticket_created_at, status in query.all()
        ]
        out.append({"id": profile.id, "name": profile.name, "email": profile.email, **summarize_staff(profile.id, rows)})

    out.sort(key=lambda r: r["tickets_handled"], reverse=True)
    return out


def build_dashboard(db: Session, filters: AnalyticsFilters) -> dict:
    tickets = load_tickets(db, filters)
    return {
        "metrics": compute_metrics(tickets),
        "trends": ticket_trends(tickets),
        "common_issues": common_issues(tickets),
        "staff_performance": staff_performance(db, filters),
    }
