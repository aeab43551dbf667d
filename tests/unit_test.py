"""Settings checks that need neither the API nor a database."""
from decimal import Decimal

import pytest
from pydantic import ValidationError as SettingsValidationError

from kinderledger.config import Settings, settings

DB = "postgresql://u:p@db:5432/school"


def _settings(**overrides):
    return Settings(DATABASE_URL=DB, SECRET_KEY="x", **overrides)


def test_defaults_from_test_environment():
    assert settings.APP_NAME == "Kinderledger Backend"
    assert settings.API_V1_PREFIX == "/api/v1"
    assert settings.REGULAR_MONTHLY_TUITION == Decimal("300.00")


def test_environment_flags():
    assert _settings(ENVIRONMENT="Production").is_production
    assert not _settings(ENVIRONMENT="staging").is_development
    assert _settings(ENVIRONMENT="development").is_development


@pytest.mark.parametrize("url", [DB, "postgresql+asyncpg://u:p@db:5432/school"])
def test_async_database_url_uses_asyncpg(url):
    assert Settings(DATABASE_URL=url, SECRET_KEY="x").async_database_url == (
        "postgresql+asyncpg://u:p@db:5432/school"
    )


def test_job_interval_must_be_at_least_a_minute():
    with pytest.raises(SettingsValidationError):
        _settings(BILLING_JOB_INTERVAL_SECONDS=5)


def test_comma_separated_lists():
    s = _settings(ALLOWED_ORIGINS="https://a.example, https://b.example,", ALLOWED_METHODS="GET,PATCH")
    assert s.ALLOWED_ORIGINS == ["https://a.example", "https://b.example"]
    assert s.ALLOWED_METHODS == ["GET", "PATCH"]


@pytest.mark.parametrize("url,expected,has_ssl", [
    ("postgresql+asyncpg://h/db?sslmode=require", "postgresql+asyncpg://h/db", True),
    ("postgresql+asyncpg://h/db?sslmode=require&application_name=x", "postgresql+asyncpg://h/db?application_name=x", True),
    ("postgresql+asyncpg://h/db?application_name=x&sslmode=disable", "postgresql+asyncpg://h/db?application_name=x", False),
    ("postgresql+asyncpg://h/db", "postgresql+asyncpg://h/db", False),
])
def test_sslmode_moves_into_connect_args(url, expected, has_ssl):
    from kinderledger.database import split_sslmode

    cleaned, connect_args = split_sslmode(url)
    assert cleaned == expected
    assert ("ssl" in connect_args) is has_ssl
