from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from petalhub.app.db.models.models_v1 import User
from petalhub.app.db.models.core_types import Role
from petalhub.app.db.session import transaction
from petalhub.services.errors import InvalidArgument, NotFound

logger = logging.getLogger(__name__)


def create_user(db: Session, *, email: str, name: str, role: Role, is_active: bool = True) -> User:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise InvalidArgument(f"Invalid email {email!r}")
    if not (name or "").strip():
        raise InvalidArgument("Name is required")
    try:
        role = Role(role)
    except ValueError as exc:
        raise InvalidArgument(f"Invalid role {role!r}") from exc

    with transaction(db):
        exists = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if exists:
            raise InvalidArgument("Email already exists")

        user = User(email=email, name=name.strip(), role=role, is_active=is_active)
        db.add(user)
        db.flush()

    logger.info("user created: id=%s role=%s", user.id, user.role.value)
    return user


def list_users(db: Session, role: Role | None = None) -> list[User]:
    with transaction(db):
        stmt = select(User).order_by(User.name, User.id)
        if role is not None:
            stmt = stmt.where(User.role == Role(role))
        return list(db.execute(stmt).scalars().all())


def get_user(db: Session, user_id: int) -> User:
    with transaction(db):
        user = db.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user


def require_role(db: Session, user_id: int, role: Role, label: str) -> User:
    """Directory check used by the core: the user exists, is active and has `role`."""
    user = db.get(User, user_id)
    if not user or user.role != role or not user.is_active:
        raise InvalidArgument(f"{label} not found or invalid role")
    return user
