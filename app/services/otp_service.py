# app/services/otp_service.py
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from fastapi import HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.config import Settings
from app.core.phone import normalize_phone
from app.core.sms_client import SmsResult, SmsSender
from app.core.timeutils import as_utc, utcnow
from app.repositories.otp_repo import OtpChallengeRepository, OtpRateLimitRepository
from app.services.rate_limiter import OtpRateLimiter

logger = logging.getLogger(__name__)

LOCKOUT_PREFIX = "otp-lockout:"

MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 8


class OtpConfig(BaseModel):
    """
    OTP knobs, passed explicitly so the flow is testable without env vars.

    `hash_key` keys the HMAC over stored codes; 4-6 digit codes are too
    small a space for a bare digest.
    """

    hash_key: str
    code_length: int = Field(default=6, ge=MIN_CODE_LENGTH, le=MAX_CODE_LENGTH)
    ttl_seconds: int = Field(default=300, gt=0)
    max_attempts: int = Field(default=5, ge=1)
    bypass: bool = False
    test_code: str = "1234"
    country_code: str = "91"

    @classmethod
    def from_settings(cls, settings: Settings) -> "OtpConfig":
        return cls(
            hash_key=settings.JWT_SECRET,
            code_length=settings.OTP_LENGTH,
            ttl_seconds=settings.OTP_TTL_SECONDS,
            max_attempts=settings.OTP_MAX_ATTEMPTS,
            bypass=settings.OTP_BYPASS,
            test_code=settings.OTP_TEST_CODE,
            country_code=settings.MSG91_COUNTRY_CODE,
        )


class OtpSendResult(BaseModel):
    ok: bool
    message: str
    phone: str
    expires_in: int
    bypass: bool = False
    bypass_code: str | None = None


class OtpVerifyResult(BaseModel):
    ok: bool
    message: str
    phone: str


class OtpService:
    """
    Phone OTP challenge lifecycle.

        NONE -> PENDING -> VERIFIED | EXPIRED | EXHAUSTED

    Responsibilities:
      - phone validation and normalization
      - send quota (via OtpRateLimiter)
      - code generation, hashing, single live challenge per phone
      - dispatch through the SMS sender, rolling back on failure
      - verification with attempt limit and lazy expiry

    Store failures are translated to 503; the plaintext code is only ever
    returned or logged in bypass mode.
    """

    def __init__(
        self,
        challenges: OtpChallengeRepository,
        limiter: OtpRateLimiter,
        config: OtpConfig,
        sender: SmsSender | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.challenges = challenges
        self.limiter = limiter
        self.config = config
        self.sender = sender
        self.clock = clock

    # ----- Helpers -----

    def _hash_code(self, phone: str, code: str) -> str:
        message = f"{phone}:{code}".encode("utf-8")
        return hmac.new(
            self.config.hash_key.encode("utf-8"), message, hashlib.sha256
        ).hexdigest()

    def _generate_code(self) -> str:
        if self.config.bypass:
            return self.config.test_code
        length = self.config.code_length
        return f"{secrets.randbelow(10**length):0{length}d}"

    def _require_phone(self, raw_phone: str | None) -> str:
        phone = normalize_phone(raw_phone, self.config.country_code)
        if phone is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid phone number. Enter a 10-digit mobile number.",
            )
        return phone

    @staticmethod
    def _store_unavailable(session: Session, exc: Exception) -> HTTPException:
        session.rollback()
        logger.error("OTP store error: %s", exc)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="OTP store unavailable. Please try again.",
        )

    def _dispatch(self, phone: str, code: str) -> SmsResult:
        try:
            return self.sender(phone, code)
        except Exception as exc:
            logger.error("SMS sender raised for phone=%s: %s", phone, exc)
            return SmsResult(ok=False, error=str(exc))

    # ----- Send -----

    def send(self, session: Session, raw_phone: str | None) -> OtpSendResult:
        """
        Issue a fresh challenge for the phone and deliver the code.

        Steps:
          1. Normalize phone (400 if invalid).
          2. Refuse early if neither a provider nor bypass is configured (501).
          3. Consume a send point (429 + Retry-After when over quota).
          4. Replace any prior challenge with a new hashed code.
          5. Dispatch via SMS; on failure delete the challenge (502).
        """
        phone = self._require_phone(raw_phone)

        if self.sender is None and not self.config.bypass:
            raise HTTPException(
                status_code=status.HTTP_501_NOT_IMPLEMENTED,
                detail="OTP provider not configured on server",
            )

        now = self.clock()

        try:
            decision = self.limiter.consume(session, phone, now=now)
        except SQLAlchemyError as exc:
            raise self._store_unavailable(session, exc)

        if not decision.allowed:
            logger.info(
                "OTP send rate limited for phone=%s retry_after=%ss",
                phone,
                decision.retry_after_seconds,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many OTP requests. Try again later.",
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )

        code = self._generate_code()
        expires_at = now + timedelta(seconds=self.config.ttl_seconds)

        try:
            self.challenges.replace(
                session,
                phone=phone,
                code_hash=self._hash_code(phone, code),
                expires_at=expires_at,
                created_at=now,
            )
            # a fresh challenge lifts any lockout left by an exhausted one
            self.limiter.reset(session, LOCKOUT_PREFIX + phone)
        except SQLAlchemyError as exc:
            raise self._store_unavailable(session, exc)

        if self.config.bypass:
            logger.warning("OTP bypass active: challenge for phone=%s uses the test code", phone)
            return OtpSendResult(
                ok=True,
                message=f"OTP bypass enabled. Use code {code}",
                phone=phone,
                expires_in=self.config.ttl_seconds,
                bypass=True,
                bypass_code=code,
            )

        result = self._dispatch(phone, code)
        if not result.ok:
            logger.error("OTP dispatch failed for phone=%s: %s", phone, result.error)
            try:
                self.challenges.delete(session, phone)
            except SQLAlchemyError as exc:
                raise self._store_unavailable(session, exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to send OTP. Please try again.",
            )

        logger.info(
            "OTP sent to phone=%s provider_id=%s", phone, result.provider_message_id
        )
        return OtpSendResult(
            ok=True,
            message="OTP sent",
            phone=phone,
            expires_in=self.config.ttl_seconds,
        )

    # ----- Verify -----

    def _too_many_attempts(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Please request a new OTP.",
        )

    def _lock_out(self, session: Session, phone: str, until: datetime) -> None:
        """
        Remember that this phone exhausted its challenge, so later verifies
        keep answering "too many attempts" until a new code is sent.
        """
        now = self.clock()
        seconds = max(1, int((until - now).total_seconds()))
        self.limiter.repo.hit(session, LOCKOUT_PREFIX + phone, seconds, now)

    def _is_locked_out(self, session: Session, phone: str) -> bool:
        row = self.limiter.repo.get(session, LOCKOUT_PREFIX + phone)
        return row is not None and as_utc(row.window_expires_at) > self.clock()

    def verify(
        self,
        session: Session,
        raw_phone: str | None,
        submitted_code: str | None,
    ) -> OtpVerifyResult:
        """
        Check a submitted code against the live challenge.

        Outcomes:
          - no challenge           -> 404 (or 429 after an exhausted one)
          - expired                -> delete, 410
          - attempts at max        -> delete, 429
          - mismatch               -> attempts += 1, 401 (429 + delete at max)
          - match                  -> delete (single use), success
        """
        phone = normalize_phone(raw_phone, self.config.country_code)
        code = (submitted_code or "").strip()
        if (
            phone is None
            or not code.isdigit()
            or not MIN_CODE_LENGTH <= len(code) <= MAX_CODE_LENGTH
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Valid phone and OTP are required",
            )

        try:
            return self._verify(session, phone, code)
        except SQLAlchemyError as exc:
            raise self._store_unavailable(session, exc)

    def _verify(self, session: Session, phone: str, code: str) -> OtpVerifyResult:
        now = self.clock()
        challenge = self.challenges.get(session, phone)

        if challenge is None:
            if self._is_locked_out(session, phone):
                raise self._too_many_attempts()
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No pending OTP request for this phone",
            )

        expires_at = as_utc(challenge.expires_at)

        if now > expires_at:
            self.challenges.delete(session, phone)
            logger.info("OTP expired for phone=%s", phone)
            raise HTTPException(
                status_code=status.HTTP_410_GONE,
                detail="OTP expired. Please request a new one.",
            )

        if challenge.attempts >= self.config.max_attempts:
            self.challenges.delete(session, phone)
            self._lock_out(session, phone, expires_at)
            raise self._too_many_attempts()

        if not hmac.compare_digest(self._hash_code(phone, code), challenge.code_hash):
            attempts = self.challenges.increment_attempts(session, phone)
            if attempts is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="No pending OTP request for this phone",
                )
            remaining = self.config.max_attempts - attempts
            logger.info(
                "Invalid OTP for phone=%s, %d attempt(s) remaining", phone, max(remaining, 0)
            )
            if remaining <= 0:
                self.challenges.delete(session, phone)
                self._lock_out(session, phone, expires_at)
                raise self._too_many_attempts()
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid OTP",
            )

        if not self.challenges.delete(session, phone):
            # a concurrent verify consumed it first
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No pending OTP request for this phone",
            )

        logger.info("OTP verified for phone=%s", phone)
        return OtpVerifyResult(ok=True, message="OTP verified", phone=phone)
