# app/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    phone: str
    name: str | None = None
    email: str | None = None
    role: Role
    created_at: datetime


class UserUpdate(SQLModel):
    """
    Partial profile update for authenticated users.

    Phone is the login identity and cannot be changed here.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role
