"""Tests for handler options, settings wiring and the Redis connection."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from line_login.core.config import Settings
from line_login.core.redis import RedisConnection
from line_login.main import create_app, create_correlation_store
from line_login.security.challenge import AuthenticationMode
from line_login.security.correlation import CookieCorrelationStore, RedisCorrelationStore
from line_login.security.properties import AuthenticationProperties
from line_login.security.state import generate_state_key
from line_login.services.oauth import OAuthConfigurationError
from line_login.services.options import LineAuthenticationOptions


def _settings(**overrides) -> Settings:
    values = {"LINE_CHANNEL_ID": "abc", "LINE_CHANNEL_SECRET": "secret"}
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# Unit Tests - Options Validation
# =============================================================================


class TestOptionsValidation:
    """Test that unusable configurations are rejected up front."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"channel_id": ""},
            {"channel_secret": ""},
            {"callback_path": "signin-line"},
            {"callback_path": ""},
            {"authentication_type": ""},
            {"backchannel_timeout": 0},
        ],
    )
    def test_invalid_options(self, data_format, overrides):
        values = {"channel_id": "abc", "channel_secret": "secret", "state_data_format": data_format}
        values.update(overrides)

        with pytest.raises(OAuthConfigurationError):
            LineAuthenticationOptions(**values)

    def test_defaults(self, data_format):
        options = LineAuthenticationOptions("abc", "secret", data_format)

        assert options.callback_path == "/signin-line"
        assert options.scope == ["profile"]
        assert options.authentication_type == "Line"
        assert options.authentication_mode is AuthenticationMode.PASSIVE
        assert options.backchannel_timeout == 60.0

    def test_mode_accepts_string(self, data_format):
        options = LineAuthenticationOptions(
            "abc", "secret", data_format, authentication_mode="active"
        )

        assert options.authentication_mode is AuthenticationMode.ACTIVE


# =============================================================================
# Unit Tests - Settings
# =============================================================================


class TestFromSettings:
    """Test building options from settings."""

    def test_from_settings(self):
        key = generate_state_key()
        config = _settings(
            STATE_ENCRYPTION_KEY=key,
            LINE_SCOPES=["profile", "openid"],
            LINE_AUTHENTICATION_MODE="active",
            LINE_CALLBACK_PATH="/auth/line/callback",
        )

        options = LineAuthenticationOptions.from_settings(config)

        assert options.channel_id == "abc"
        assert options.scope == ["profile", "openid"]
        assert options.authentication_mode is AuthenticationMode.ACTIVE
        assert options.callback_path == "/auth/line/callback"
        assert options.sign_in_as_authentication_type == "Cookies"

        protected = options.state_data_format.protect(AuthenticationProperties({"k": "v"}))
        assert options.state_data_format.unprotect(protected).items == {"k": "v"}

    def test_missing_state_key_uses_ephemeral_key(self, caplog):
        with caplog.at_level(logging.WARNING):
            options = LineAuthenticationOptions.from_settings(_settings(STATE_ENCRYPTION_KEY=""))

        assert "STATE_ENCRYPTION_KEY is not set" in caplog.text
        protected = options.state_data_format.protect(AuthenticationProperties())
        assert options.state_data_format.unprotect(protected) is not None

    def test_missing_channel_id(self):
        with pytest.raises(OAuthConfigurationError):
            LineAuthenticationOptions.from_settings(_settings(LINE_CHANNEL_ID=""))

    def test_invalid_state_key(self):
        with pytest.raises(OAuthConfigurationError):
            LineAuthenticationOptions.from_settings(_settings(STATE_ENCRYPTION_KEY="not-a-key"))

    def test_empty_sign_in_type_disables_sign_in(self):
        options = LineAuthenticationOptions.from_settings(
            _settings(LINE_SIGN_IN_AS_AUTHENTICATION_TYPE="")
        )

        assert options.sign_in_as_authentication_type is None

    def test_create_app_rejects_missing_credentials(self):
        with pytest.raises(OAuthConfigurationError):
            create_app(config=_settings(LINE_CHANNEL_SECRET=""))


# =============================================================================
# Unit Tests - Correlation Store Selection and Redis
# =============================================================================


class TestCorrelationStoreSelection:
    """Test CORRELATION_STORE wiring."""

    def test_cookie_store(self):
        store = create_correlation_store(_settings(CORRELATION_TTL_SECONDS=120))

        assert isinstance(store, CookieCorrelationStore)
        assert store.max_age == 120

    def test_redis_store(self):
        connection = RedisConnection("redis://redis:6379/1")

        store = create_correlation_store(
            _settings(CORRELATION_STORE="redis", CORRELATION_TTL_SECONDS=120), connection
        )

        assert isinstance(store, RedisCorrelationStore)
        assert store.connection is connection
        assert store.ttl == 120

    def test_redis_store_from_url(self):
        store = create_correlation_store(
            _settings(CORRELATION_STORE="redis", REDIS_URL="redis://redis:6379/2")
        )

        assert store.connection.url == "redis://redis:6379/2"


class TestRedisConnection:
    """Test the Redis connection wrapper (mocked pool)."""

    @pytest.mark.asyncio
    @patch("line_login.core.redis.redis.Redis")
    @patch("line_login.core.redis.redis.ConnectionPool.from_url")
    async def test_connect_is_lazy_and_idempotent(self, mock_from_url, mock_redis_class):
        mock_from_url.return_value = MagicMock()
        connection = RedisConnection("redis://localhost:6379/0", max_connections=5)

        client = await connection.get_client()
        again = await connection.get_client()

        assert client is again
        assert client is mock_redis_class.return_value
        mock_redis_class.assert_called_once_with(connection_pool=mock_from_url.return_value)
        mock_from_url.assert_called_once_with(
            "redis://localhost:6379/0", max_connections=5, decode_responses=True
        )

    @pytest.mark.asyncio
    async def test_ping_failure_returns_false(self):
        connection = RedisConnection("redis://localhost:6379/0")
        client = AsyncMock()
        client.ping.side_effect = ConnectionError("refused")
        connection.client = client

        assert await connection.ping() is False

    @pytest.mark.asyncio
    async def test_close(self):
        connection = RedisConnection("redis://localhost:6379/0")
        client = AsyncMock()
        pool = AsyncMock()
        connection.client = client
        connection.pool = pool

        await connection.close()

        client.aclose.assert_awaited_once()
        pool.disconnect.assert_awaited_once()
        assert connection.client is None
        assert connection.pool is None
