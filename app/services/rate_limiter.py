# app/services/rate_limiter.py
import math
from datetime import datetime, timedelta

from pydantic import BaseModel
from sqlmodel import Session

from app.core.timeutils import as_utc, utcnow
from app.repositories.otp_repo import OtpRateLimitRepository


class RateLimitDecision(BaseModel):
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


class OtpRateLimiter:
    """
    N sends per rolling fixed window, keyed by normalized phone.

    Every call consumes a point, including rejected ones, so hammering the
    endpoint keeps the key blocked. With block_seconds > 0 the first
    rejection also pushes the window end out to now + block_seconds.
    """

    def __init__(
        self,
        repo: OtpRateLimitRepository,
        max_hits: int = 5,
        window_seconds: int = 3600,
        block_seconds: int = 0,
    ):
        self.repo = repo
        self.max_hits = max_hits
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds

    def consume(
        self,
        session: Session,
        key: str,
        now: datetime | None = None,
    ) -> RateLimitDecision:
        now = now or utcnow()
        row = self.repo.hit(session, key, self.window_seconds, now)
        expires_at = as_utc(row.window_expires_at)

        if row.hits <= self.max_hits:
            return RateLimitDecision(allowed=True, remaining=self.max_hits - row.hits)

        if self.block_seconds > 0 and row.hits == self.max_hits + 1:
            blocked_until = now + timedelta(seconds=self.block_seconds)
            if blocked_until > expires_at:
                self.repo.extend_window(session, key, blocked_until)
                expires_at = blocked_until

        retry_after = max(1, math.ceil((expires_at - now).total_seconds()))
        return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=retry_after)

    def reset(self, session: Session, key: str) -> None:
        self.repo.reset(session, key)
