"""Authorization predicates.

These mirror the database-side helpers of the hosted schema (``has_role``,
``can_invite_staff``) and the ticket-membership rule that scopes tickets,
messages and attachments.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from app.models.profile import Profile
from app.models.ticket import Ticket
from app.models.user_role import AppRole, UserRole


ROLE_PRECEDENCE: tuple[AppRole, ...] = (AppRole.ADMIN, AppRole.STAFF, AppRole.STUDENT)
PRIVILEGED_ROLES: frozenset[AppRole] = frozenset({AppRole.STAFF, AppRole.ADMIN})


def _coerce_role(role: AppRole | str) -> AppRole | None:
    if isinstance(role, AppRole):
        return role
    try:
        return AppRole(str(role or "").strip().lower())
    except ValueError:
        return None


def get_roles(db: Session, user_id: str) -> set[AppRole]:
    rows = db.query(UserRole.role).filter(UserRole.user_id == user_id).all()
    return {r for (r,) in rows if r is not None}


def has_role(db: Session, user_id: str, role: AppRole | str) -> bool:
    wanted = _coerce_role(role)
    if wanted is None or not user_id:
        return False
    row = db.query(UserRole.id).filter(UserRole.user_id == user_id, UserRole.role == wanted).first()
    return row is not None


def can_invite_staff(db: Session, user_id: str) -> bool:
    if not user_id:
        return False
    row = (
        db.query(UserRole.id)
        .filter(UserRole.user_id == user_id, UserRole.role.in_(list(PRIVILEGED_ROLES)))
        .first()
    )
    return row is not None


def primary_role(roles: Iterable[AppRole | str]) -> AppRole:
    held = {r for r in (_coerce_role(x) for x in roles) if r is not None}
    for role in ROLE_PRECEDENCE:
        if role in held:
            return role
    return AppRole.STUDENT


def is_privileged(roles: Iterable[AppRole | str]) -> bool:
    return primary_role(roles) in PRIVILEGED_ROLES


def can_access_ticket(ticket: Ticket, user_id: str, roles: Iterable[AppRole | str]) -> bool:
    if ticket is None:
        return False
    if ticket.student_id == user_id:
        return True
    return is_privileged(roles)


def ensure_profile(db: Session, user_id: str, email: str, name: str | None = None) -> Profile:
    """Return the profile for ``user_id``, creating it on first sight.

    Does not commit.
    """
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        profile = Profile(id=user_id, email=email or "", name=(name or "").strip() or "User")
        db.add(profile)
        db.flush()
    return profile


def grant_role(db: Session, user_id: str, role: AppRole) -> UserRole:
    """Insert the (user, role) pair if missing. Does not commit."""
    existing = db.query(UserRole).filter(UserRole.user_id == user_id, UserRole.role == role).first()
    if existing is not None:
        return existing
    row = UserRole(user_id=user_id, role=role)
    db.add(row)
    db.flush()
    return row
