# tests/conftest.py
import os

# Settings are read at import time; point them at throwaway values first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["OTP_BYPASS"] = "false"
os.environ["ADMIN_PHONES"] = "9000000001"
os.environ.pop("MSG91_AUTH_KEY", None)

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from app.core.auth import create_access_token  # noqa: E402
from app.core.sms_client import SmsResult  # noqa: E402
from app.database import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.models.user import User  # noqa: E402
from app.repositories.otp_repo import (  # noqa: E402
    OtpChallengeRepository,
    OtpRateLimitRepository,
)
from app.routers.auth import get_otp_service  # noqa: E402
from app.services.otp_service import OtpConfig, OtpService  # noqa: E402
from app.services.rate_limiter import OtpRateLimiter  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeSender:
    """Records every (phone, code) instead of talking to MSG91."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def __call__(self, phone: str, code: str) -> SmsResult:
        self.sent.append((phone, code))
        if self.fail:
            return SmsResult(ok=False, error="provider down")
        return SmsResult(ok=True, provider_message_id=f"msg-{len(self.sent)}")

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def otp_service(clock, sender) -> OtpService:
    limiter = OtpRateLimiter(OtpRateLimitRepository(), max_hits=5, window_seconds=3600)
    return OtpService(
        OtpChallengeRepository(),
        limiter,
        OtpConfig(hash_key="test-secret", code_length=6, ttl_seconds=300, max_attempts=5),
        sender=sender,
        clock=clock,
    )


@pytest.fixture(name="client")
def client_fixture(session, otp_service):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_otp_service] = lambda: otp_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    def _make(phone: str = "9876543210", role: str = "user") -> User:
        user = User(phone=phone, role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers


@pytest.fixture
def customer(make_user) -> User:
    return make_user("9876543210", "user")


@pytest.fixture
def admin(make_user) -> User:
    return make_user("9000000001", "admin")


@pytest.fixture
def make_product(session):
    counter = {"n": 0}

    def _make(**overrides) -> Product:
        counter["n"] += 1
        fields = {
            "title": f"Product {counter['n']}",
            "slug": f"product-{counter['n']}",
            "price": 500,
            "stock": 10,
            "published": True,
        }
        fields.update(overrides)
        product = Product(**fields)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make
