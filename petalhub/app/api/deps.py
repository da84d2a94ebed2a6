from __future__ import annotations

from typing import Callable, Generator

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from petalhub.app.core.rbac import has_permissions
from petalhub.app.db.models.core_types import Permission, Role
from petalhub.app.db.session import SessionLocal


class Caller(BaseModel):
    """Identité déjà authentifiée par la couche amont (gateway / auth)."""

    id: int
    role: Role


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_caller(
    x_user_id: int | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Caller:
    if x_user_id is None or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    try:
        role = Role(x_user_role.strip().upper())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role {x_user_role!r}")
    return Caller(id=x_user_id, role=role)


def require_permissions(*permissions: Permission) -> Callable[..., Caller]:
    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if not has_permissions(caller.role, *permissions):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return caller

    return dependency


def require_roles(*roles: Role) -> Callable[..., Caller]:
    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return caller

    return dependency
