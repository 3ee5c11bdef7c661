# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Customer / admin profile, identified by a verified phone number.

    Rows are provisioned on the first successful OTP login.

    Role:
      - "user" | "admin"
      - "guest" is represented by the absence of a token.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    phone: str = Field(
        unique=True,
        index=True,
        max_length=15,
        description="Canonical 10-digit mobile number",
    )

    name: str | None = Field(
        default=None,
        max_length=50,
        description="Customer display name",
    )

    email: str | None = Field(
        default=None,
        description="Optional email for receipts",
    )

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
