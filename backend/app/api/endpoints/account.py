from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.security import CurrentUser, get_current_user


router = APIRouter(dependencies=[Depends(get_current_user)])


class MeResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str
    roles: List[str]
    is_staff: bool
    is_admin: bool


@router.get("/me", response_model=MeResponse)
async def me(current_user: CurrentUser = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        roles=sorted(current_user.roles),
        is_staff=current_user.is_staff,
        is_admin=current_user.is_admin,
    )
