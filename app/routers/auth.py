# app/routers/auth.py
from functools import lru_cache

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import create_access_token, require_auth
from app.core.config import get_settings
from app.core.sms_client import Msg91Client
from app.database import get_session
from app.models.user import User
from app.repositories.otp_repo import OtpChallengeRepository, OtpRateLimitRepository
from app.repositories.user_repo import UserRepository
from app.schemas.auth import (
    LogoutResponse,
    OtpSendRequest,
    OtpVerifyRequest,
    TokenResponse,
)
from app.schemas.user import UserRead
from app.services.otp_service import OtpConfig, OtpSendResult, OtpService
from app.services.rate_limiter import OtpRateLimiter
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])

user_repo = UserRepository()
user_service = UserService(user_repo)


@lru_cache
def get_otp_service() -> OtpService:
    """
    Build the OTP service from settings once per process.

    Without MSG91_AUTH_KEY there is no sender; send then only works in
    bypass mode and otherwise answers 501.
    """
    settings = get_settings()
    sender = Msg91Client(settings).send_otp if settings.MSG91_AUTH_KEY else None
    limiter = OtpRateLimiter(
        OtpRateLimitRepository(),
        max_hits=settings.OTP_RATE_LIMIT_MAX,
        window_seconds=settings.OTP_RATE_LIMIT_WINDOW_SECONDS,
        block_seconds=settings.OTP_RATE_LIMIT_BLOCK_SECONDS,
    )
    return OtpService(
        OtpChallengeRepository(),
        limiter,
        OtpConfig.from_settings(settings),
        sender=sender,
    )


@router.post(
    "/otp/send",
    response_model=OtpSendResult,
    response_model_exclude_none=True,
)
def send_otp(
    payload: OtpSendRequest,
    session: Session = Depends(get_session),
    otp_service: OtpService = Depends(get_otp_service),
):
    """
    Send a one-time login code to the phone.

    - 400 invalid phone
    - 429 too many requests (Retry-After header)
    - 502 SMS provider failed
    - 501 no SMS provider configured
    """
    return otp_service.send(session, payload.phone)


@router.post("/otp/verify", response_model=TokenResponse)
def verify_otp(
    payload: OtpVerifyRequest,
    session: Session = Depends(get_session),
    otp_service: OtpService = Depends(get_otp_service),
):
    """
    Verify the code and start a session.

    On success the profile is provisioned on first login and a bearer
    token is returned together with the user.
    """
    settings = get_settings()
    result = otp_service.verify(session, payload.phone, payload.otp)
    user = user_service.get_or_create_by_phone(
        session, result.phone, settings.admin_phones
    )
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead(
            id=user.id,
            phone=user.phone,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
        ),
    )


@router.get("/me", response_model=UserRead)
def read_session_user(current_user: User = Depends(require_auth)):
    """
    Return the user behind the bearer token.
    """
    return current_user


@router.post("/logout", response_model=LogoutResponse)
def logout(current_user: User = Depends(require_auth)):
    """
    Tokens are stateless; the client drops its copy.
    """
    return LogoutResponse()
