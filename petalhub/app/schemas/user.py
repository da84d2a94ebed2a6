from datetime import datetime

from pydantic import BaseModel

from petalhub.app.db.models.core_types import Role


class UserRead(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserRef(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True
