from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.settings import settings
from app.models.profile import Profile
from app.models.user_role import AppRole
from app.services.policies import ensure_profile, get_roles, grant_role, is_privileged, primary_role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    name: str
    role: str
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_staff(self) -> bool:
        return is_privileged(self.roles)

    @property
    def is_admin(self) -> bool:
        return AppRole.ADMIN.value in self.roles


class InvalidTokenError(Exception):
    pass


def _normalize_email(value: str) -> str:
    return str(value or "").strip().lower()


def _require_supabase_config() -> str:
    if not settings.supabase_url:
        raise HTTPException(status_code=500, detail="SUPABASE_URL is not configured")
    return settings.supabase_url


_JWKS_CLIENTS: dict[str, jwt.PyJWKClient] = {}


def _jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    client = _JWKS_CLIENTS.get(jwks_url)
    if client is None:
        client = jwt.PyJWKClient(jwks_url)
        _JWKS_CLIENTS[jwks_url] = client
    return client


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a Supabase-issued access token and return its claims.

    Projects with a legacy shared secret (``SUPABASE_JWT_SECRET``) are checked
    with HS256; otherwise the signing key comes from the project's JWKS.
    Raises ``InvalidTokenError`` on any verification failure.
    """
    audience = settings.supabase_jwt_audience or "authenticated"
    options = {"require": ["exp", "sub"]}
    try:
        if settings.supabase_jwt_secret:
            payload = jwt.decode(
                token,
                settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience=audience,
                issuer=settings.supabase_jwt_issuer,
                options=options,
            )
        else:
            supabase_url = _require_supabase_config().rstrip("/")
            issuer = settings.supabase_jwt_issuer or f"{supabase_url}/auth/v1"
            signing_key = _jwks_client(f"{supabase_url}/auth/v1/.well-known/jwks.json").get_signing_key_from_jwt(token).key
            payload = jwt.decode(
                token,
                signing_key,
                algorithms=["ES256", "RS256"],
                audience=audience,
                issuer=issuer,
                options=options,
            )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc) or exc.__class__.__name__) from exc
    return dict(payload)


def get_bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def _claims_name(claims: dict[str, Any]) -> str:
    user_meta = claims.get("user_metadata") or {}
    if not isinstance(user_meta, dict):
        user_meta = {}
    return str(user_meta.get("name") or user_meta.get("full_name") or "").strip()


def resolve_user(db: Session, claims: dict[str, Any]) -> CurrentUser:
    """Map verified claims to a ``CurrentUser``.

    First sight of an account creates its profile and grants the default
    student role, matching public signup.
    """
    user_id = str(claims.get("sub") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    email = _normalize_email(claims.get("email") or "")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    changed = False
    if profile is None:
        profile = ensure_profile(db, user_id, email, _claims_name(claims))
        changed = True
    roles = get_roles(db, user_id)
    if not roles:
        grant_role(db, user_id, AppRole.STUDENT)
        roles = {AppRole.STUDENT}
        changed = True
    if changed:
        db.commit()
        logger.info("security.first_seen user_id=%s", user_id)

    role = primary_role(roles)
    return CurrentUser(
        id=profile.id,
        email=profile.email or email,
        name=profile.name or "User",
        role=role.value,
        roles=frozenset(r.value for r in roles),
    )


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    token = get_bearer_token(request)
    try:
        claims = decode_access_token(token)
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid bearer token")
    return resolve_user(db, claims)


def require_staff(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_staff:
        raise HTTPException(status_code=403, detail="Staff access required")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
