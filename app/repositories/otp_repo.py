# app/repositories/otp_repo.py
from datetime import datetime, timedelta

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.otp import OtpChallenge, OtpRateLimit


class OtpChallengeRepository:
    """
    Data access layer for otp_challenges.

    Writes go through single UPDATE/DELETE/INSERT statements so that
    concurrent requests for one phone never read-modify-write the row.
    Reads use populate_existing so a session never serves a stale row
    after one of those statements.
    """

    def get(self, session: Session, phone: str) -> OtpChallenge | None:
        stmt = (
            select(OtpChallenge)
            .where(OtpChallenge.phone == phone)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def replace(
        self,
        session: Session,
        *,
        phone: str,
        code_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> OtpChallenge:
        """
        Replace-if-exists-else-insert in one transaction.

        A concurrent send for the same phone can win the insert; in that
        case the transaction is retried once so the latest send wins.
        """
        values = {
            "phone": phone,
            "code_hash": code_hash,
            "attempts": 0,
            "expires_at": expires_at,
            "created_at": created_at,
        }
        for attempt in range(2):
            try:
                session.execute(delete(OtpChallenge).where(OtpChallenge.phone == phone))
                session.execute(insert(OtpChallenge).values(**values))
                session.commit()
                break
            except IntegrityError:
                session.rollback()
                if attempt:
                    raise
        return self.get(session, phone)

    def increment_attempts(self, session: Session, phone: str) -> int | None:
        """
        Atomically bump the failed-attempt counter.

        Returns the new count, or None if the challenge vanished meanwhile.
        """
        result = session.execute(
            update(OtpChallenge)
            .where(OtpChallenge.phone == phone)
            .values(attempts=OtpChallenge.attempts + 1)
        )
        session.commit()
        if not result.rowcount:
            return None
        challenge = self.get(session, phone)
        return challenge.attempts if challenge else None

    def delete(self, session: Session, phone: str) -> bool:
        result = session.execute(delete(OtpChallenge).where(OtpChallenge.phone == phone))
        session.commit()
        return bool(result.rowcount)

    def purge_expired(self, session: Session, now: datetime) -> int:
        """Optional hygiene sweep; expiry is otherwise handled lazily on read."""
        result = session.execute(
            delete(OtpChallenge)
            .where(OtpChallenge.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        session.commit()
        return result.rowcount or 0


class OtpRateLimitRepository:
    """
    Data access layer for otp_rate_limits (fixed-window counters).

    Statements with datetime criteria skip in-session evaluation (SQLite
    hands back naive timestamps); `get` reloads the row afterwards.
    """

    def get(self, session: Session, key: str) -> OtpRateLimit | None:
        stmt = (
            select(OtpRateLimit)
            .where(OtpRateLimit.key == key)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def hit(
        self,
        session: Session,
        key: str,
        window_seconds: int,
        now: datetime,
    ) -> OtpRateLimit:
        """
        Atomic increment-with-expiry.

        1. Bump the counter if its window is still open.
        2. Otherwise drop the stale row and open a new window with hits=1.
           Losing that insert to a concurrent request sends us back to 1.
        """
        retried = False
        while True:
            result = session.execute(
                update(OtpRateLimit)
                .where(
                    OtpRateLimit.key == key,
                    OtpRateLimit.window_expires_at > now,
                )
                .values(hits=OtpRateLimit.hits + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                session.commit()
                return self.get(session, key)

            session.execute(
                delete(OtpRateLimit).where(
                    OtpRateLimit.key == key,
                    OtpRateLimit.window_expires_at <= now,
                )
                .execution_options(synchronize_session=False)
            )
            try:
                session.execute(
                    insert(OtpRateLimit).values(
                        key=key,
                        hits=1,
                        window_expires_at=now + timedelta(seconds=window_seconds),
                    )
                )
                session.commit()
            except IntegrityError:
                session.rollback()
                if retried:
                    raise
                retried = True
                continue
            return self.get(session, key)

    def extend_window(self, session: Session, key: str, until: datetime) -> None:
        session.execute(
            update(OtpRateLimit)
            .where(OtpRateLimit.key == key, OtpRateLimit.window_expires_at < until)
            .values(window_expires_at=until)
            .execution_options(synchronize_session=False)
        )
        session.commit()

    def reset(self, session: Session, key: str) -> None:
        session.execute(delete(OtpRateLimit).where(OtpRateLimit.key == key))
        session.commit()
