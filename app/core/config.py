# app/core/config.py
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.phone import normalize_phone


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// works for local runs)
      - JWT_SECRET (signs session tokens and keys the OTP code hash)

    Optional:
      - MSG91_AUTH_KEY (real SMS delivery; without it only bypass mode can send)
      - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (product image storage)
    """

    PROJECT_NAME: str = "Seemati Storefront API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    DATABASE_URL: str

    # Session tokens (issued by this backend after OTP login)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Comma separated canonical phones promoted to admin on first login
    ADMIN_PHONES: str = ""

    # OTP
    OTP_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 5 * 60
    OTP_MAX_ATTEMPTS: int = 5
    OTP_RATE_LIMIT_MAX: int = 5
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = 60 * 60
    OTP_RATE_LIMIT_BLOCK_SECONDS: int = 0
    OTP_BYPASS: bool = False
    OTP_TEST_CODE: str = "1234"

    # MSG91 SMS gateway
    MSG91_AUTH_KEY: str | None = None
    MSG91_TEMPLATE_ID: str | None = None
    MSG91_SENDER: str | None = None
    MSG91_COUNTRY_CODE: str = "91"
    MSG91_TIMEOUT_SECONDS: float = 15.0

    # Pricing (INR)
    SHIPPING_THRESHOLD: float = 999
    SHIPPING_FEE: float = 60
    TAX_RATE: float = 0.05
    MAX_LINE_QUANTITY: int = 99

    # Supabase Storage for product images (service role key, backend only)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_BUCKET: str = "assets"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def bypass_not_in_production(self) -> "Settings":
        if self.OTP_BYPASS and self.ENVIRONMENT.lower() == "production":
            raise ValueError("OTP_BYPASS cannot be enabled when ENVIRONMENT=production")
        return self

    @property
    def admin_phones(self) -> set[str]:
        """ADMIN_PHONES entries in canonical form; unparseable ones are dropped."""
        phones = (normalize_phone(p) for p in self.ADMIN_PHONES.split(","))
        return {p for p in phones if p}


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
