# app/schemas/auth.py
from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.user import UserRead


class OtpSendRequest(SQLModel):
    """
    Ask for a login code. The phone is normalized server-side, so
    "+91 98765 43210", "098765 43210" and "9876543210" are all accepted.
    """

    model_config = ConfigDict(extra="forbid")

    phone: str = Field(max_length=20)


class OtpVerifyRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    phone: str = Field(max_length=20)
    otp: str = Field(max_length=12)


class TokenResponse(SQLModel):
    """
    Session issued after a successful OTP verification.
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class LogoutResponse(SQLModel):
    ok: bool = True
    message: str = "Logged out"
