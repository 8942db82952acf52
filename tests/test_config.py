"""Unit tests for core/config.py -- Settings validation and the signing secret policy."""

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_SECRET = "s" * 32


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_defaults():
    settings = _settings(jwt_secret=GOOD_SECRET, environment="development")
    assert settings.token_expire_seconds == 86400
    assert settings.auth_rate_limit == "10/15minutes"
    assert settings.global_rate_limit == "100/15minutes"
    assert settings.is_production is False


def test_short_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32"):
        _settings(jwt_secret="too-short")


def test_production_requires_secret():
    with pytest.raises(ValidationError, match="JWT_SECRET is required"):
        _settings(jwt_secret="", environment="production")


def test_empty_secret_allowed_outside_production():
    settings = _settings(jwt_secret="", environment="development")
    assert settings.jwt_secret == ""


def test_production_flag_is_case_insensitive():
    assert _settings(jwt_secret=GOOD_SECRET, environment="Production").is_production


def test_app_env_variable(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("JWT_SECRET", GOOD_SECRET)
    assert Settings(_env_file=None).is_production


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_range(rounds):
    with pytest.raises(ValidationError):
        _settings(jwt_secret=GOOD_SECRET, bcrypt_rounds=rounds)


def test_token_expiry_must_be_positive():
    with pytest.raises(ValidationError):
        _settings(jwt_secret=GOOD_SECRET, token_expire_seconds=0)
