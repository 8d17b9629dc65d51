"""
Tests for settings validation and JWT handling.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from pydantic import ValidationError

from groceazy.core.config import DEFAULT_SECRET_KEY, Settings, get_settings
from groceazy.core.security import TokenError, create_access_token, decode_token

PRODUCTION_SECRET = "groceazy-production-signing-key-2026"


# ============================================================================
# Settings Tests
# ============================================================================


class TestSettings:
    def test_default_secret_rejected_in_production(self):
        with pytest.raises(ValidationError, match="Default secret key"):
            Settings(_env_file=None, environment="production", secret_key=DEFAULT_SECRET_KEY)

    def test_custom_secret_allowed_in_production(self):
        settings = Settings(
            _env_file=None,
            environment="production",
            secret_key=PRODUCTION_SECRET,
        )

        assert settings.is_production
        assert settings.secret_key == PRODUCTION_SECRET

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(_env_file=None, secret_key="s3cr3t-value")

    def test_rejects_unknown_database_scheme(self):
        with pytest.raises(ValidationError, match="Database URL"):
            Settings(_env_file=None, database_url="mysql://localhost/groceazy")

    def test_accepts_sqlite(self):
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///groceazy.db")

        assert settings.uses_sqlite

    def test_rejects_bad_redis_url(self):
        with pytest.raises(ValidationError, match="Redis URL"):
            Settings(_env_file=None, redis_url="http://localhost:6379")

    def test_cors_origins_from_comma_list(self):
        settings = Settings(
            _env_file=None,
            cors_origins="http://localhost:3000, https://groceazy.com,",
        )

        assert settings.cors_origins == ["http://localhost:3000", "https://groceazy.com"]

    def test_environment_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "staging")

        assert Settings(_env_file=None).environment == "staging"


# ============================================================================
# Token Tests
# ============================================================================


class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token("user-1", role="manager")

        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["role"] == "manager"
        assert payload["type"] == "access"

    def test_role_is_optional(self):
        assert "role" not in decode_token(create_access_token("user-1"))

    def test_empty_token(self):
        with pytest.raises(TokenError) as exc_info:
            decode_token("")

        assert exc_info.value.code == "EMPTY_TOKEN"

    def test_expired_token(self):
        token = create_access_token("user-1", expires_delta=timedelta(seconds=-1))

        with pytest.raises(TokenError) as exc_info:
            decode_token(token)

        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_signature(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "some-other-key",
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(TokenError) as exc_info:
            decode_token(token)

        assert exc_info.value.code == "INVALID_TOKEN"

    def test_refresh_token_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {
                "sub": "user-1",
                "type": "refresh",
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(TokenError) as exc_info:
            decode_token(token)

        assert exc_info.value.code == "INVALID_TOKEN_TYPE"
