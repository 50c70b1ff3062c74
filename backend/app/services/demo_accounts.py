from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.user_role import AppRole
from app.services.policies import ensure_profile, grant_role
from app.services.supabase_admin import SupabaseAdminClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoAccount:
    email: str
    password: str
    name: str
    role: AppRole


def demo_accounts() -> list[DemoAccount]:
    return [
        DemoAccount(settings.demo_admin_email, settings.demo_admin_password, "Admin User", AppRole.ADMIN),
        DemoAccount(settings.demo_staff_email, settings.demo_staff_password, "Staff User", AppRole.STAFF),
    ]


def setup_demo_accounts(db: Session, auth_admin: SupabaseAdminClient) -> dict:
    """Make sure the demo admin and staff accounts exist.

    Safe to call repeatedly; existing accounts only get their profile and
    role rows back-filled. ``SupabaseAdminError`` propagates to the caller.
    """
    existing = {u.email.lower(): u for u in auth_admin.list_users() if u.email}
    accounts = demo_accounts()
    created: list[str] = []

    for account in accounts:
        user = existing.get(account.email.lower())
        if user is None:
            user = auth_admin.create_user(email=account.email, password=account.password, name=account.name)
            created.append(account.email)
            logger.info("demo_accounts.created email=%s role=%s", account.email, account.role.value)
        else:
            logger.info("demo_accounts.exists email=%s", account.email)
        ensure_profile(db, user.id, user.email or account.email, account.name)
        grant_role(db, user.id, account.role)
        db.commit()

    return {
        "success": True,
        "message": "Demo accounts setup completed",
        "created": created,
        "accounts": {
            a.role.value: {"email": a.email, "password": a.password} for a in accounts
        },
    }
