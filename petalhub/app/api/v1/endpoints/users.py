from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from petalhub.app.api.deps import Caller, get_caller, get_db, require_permissions, require_roles
from petalhub.app.db.models.core_types import Permission, Role
from petalhub.app.schemas.user import UserRead
from petalhub.services import users as users_svc

router = APIRouter(prefix="/users")


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=200)
    role: Role


@router.post("", status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.user_create)),
):
    user = users_svc.create_user(db, email=payload.email, name=payload.name, role=payload.role)
    return UserRead.model_validate(user)


@router.get("")
def list_users(
    role: Role | None = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_roles(Role.employee)),
):
    return [UserRead.model_validate(u) for u in users_svc.list_users(db, role=role)]


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    if caller.role != Role.employee and caller.id != user_id:
        raise HTTPException(status_code=403, detail="Can only read own profile")
    return UserRead.model_validate(users_svc.get_user(db, user_id))
