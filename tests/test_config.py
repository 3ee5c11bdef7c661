import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.services.otp_service import OtpConfig


def _settings(**overrides) -> Settings:
    values = {"DATABASE_URL": "sqlite://", "JWT_SECRET": "s"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_bypass_refused_in_production():
    with pytest.raises(ValidationError):
        _settings(ENVIRONMENT="production", OTP_BYPASS=True)


def test_bypass_allowed_outside_production():
    assert _settings(ENVIRONMENT="staging", OTP_BYPASS=True).OTP_BYPASS


def test_bypass_is_off_by_default():
    assert _settings(OTP_BYPASS=False).OTP_BYPASS is False
    assert Settings.model_fields["OTP_BYPASS"].default is False


def test_admin_phones_parsing():
    settings = _settings(ADMIN_PHONES=" 9000000001, ,9000000002 ")
    assert settings.admin_phones == {"9000000001", "9000000002"}


def test_otp_config_from_settings():
    config = OtpConfig.from_settings(_settings(OTP_LENGTH=4, OTP_TTL_SECONDS=120))
    assert config.code_length == 4
    assert config.ttl_seconds == 120
    assert config.hash_key == "s"


def test_otp_length_is_bounded():
    with pytest.raises(ValidationError):
        OtpConfig.from_settings(_settings(OTP_LENGTH=12))


def test_admin_phones_are_normalized():
    settings = _settings(ADMIN_PHONES="+91 90000 00002, 09000000003, 12345")
    assert settings.admin_phones == {"9000000002", "9000000003"}
