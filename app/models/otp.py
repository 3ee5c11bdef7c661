# app/models/otp.py
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.core.timeutils import utcnow


class OtpChallenge(SQLModel, table=True):
    """
    One outstanding OTP verification for a phone.

    Keyed by phone, so there is at most one live challenge per number;
    a new send replaces the row. The plaintext code is never stored.
    """

    __tablename__ = "otp_challenges"

    phone: str = Field(
        primary_key=True,
        max_length=15,
        description="Canonical 10-digit mobile number",
    )

    code_hash: str = Field(
        max_length=128,
        description="HMAC-SHA256 of the code",
    )

    attempts: int = Field(
        default=0,
        ge=0,
        description="Failed verify attempts so far",
    )

    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),
        index=True,
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
    )


class OtpRateLimit(SQLModel, table=True):
    """
    Fixed-window send counter per rate-limit key (usually the phone).
    """

    __tablename__ = "otp_rate_limits"

    key: str = Field(primary_key=True, max_length=64)

    hits: int = Field(default=0, ge=0)

    window_expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),
        index=True,
        description="Counter resets after this instant",
    )
