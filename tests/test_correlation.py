"""Tests for correlation (anti-CSRF) stores.

Tests cover:
- Correlation id generation
- Cookie store issue/validate, mismatch, replay
- Redis store single-use semantics (mocked Redis)
"""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.responses import Response

from line_login.security.correlation import (
    CookieCorrelationStore,
    RedisCorrelationStore,
)
from line_login.security.properties import AuthenticationProperties
from line_login.services.oauth import generate_correlation_id

COOKIE = "line_login_correlation_Line"


def _set_cookie_headers(response: Response) -> list[str]:
    return [v.decode() for k, v in response.raw_headers if k == b"set-cookie"]


# =============================================================================
# Unit Tests - Correlation Id Generation
# =============================================================================


class TestCorrelationIdGeneration:
    """Test correlation id generation."""

    def test_generate_correlation_id_length(self):
        """Test that the id carries 256 bits (43 URL-safe characters)."""
        assert len(generate_correlation_id()) == 43

    def test_generate_correlation_id_uniqueness(self):
        ids = [generate_correlation_id() for _ in range(100)]
        assert len(set(ids)) == 100

    def test_generate_correlation_id_url_safe(self):
        assert re.match(r"^[A-Za-z0-9_-]+$", generate_correlation_id())


# =============================================================================
# Unit Tests - Cookie Store
# =============================================================================


class TestCookieCorrelationStore:
    """Test the cookie-backed correlation store."""

    @pytest.mark.asyncio
    async def test_issue_sets_cookie_and_property(self, make_request):
        store = CookieCorrelationStore()
        properties = AuthenticationProperties()
        response = Response()

        correlation_id = await store.issue("Line", properties, make_request("/"), response)

        assert properties.correlation_id == correlation_id
        headers = _set_cookie_headers(response)
        assert len(headers) == 1
        assert headers[0].startswith(f"{COOKIE}={correlation_id};")
        assert "HttpOnly" in headers[0]
        assert "Secure" not in headers[0]

    @pytest.mark.asyncio
    async def test_issue_over_https_sets_secure_cookie(self, make_request):
        store = CookieCorrelationStore()
        response = Response()

        await store.issue("Line", AuthenticationProperties(), make_request("/", scheme="https"), response)

        assert "Secure" in _set_cookie_headers(response)[0]

    @pytest.mark.asyncio
    async def test_validate_matching(self, make_request):
        store = CookieCorrelationStore()
        properties = AuthenticationProperties({"correlation_id": "nonce-1"})
        response = Response()

        ok = await store.validate(
            "Line", properties, make_request("/signin-line", cookies={COOKIE: "nonce-1"}), response
        )

        assert ok is True
        assert properties.correlation_id is None
        # cookie is cleared
        assert any(h.startswith(f'{COOKIE}=""') for h in _set_cookie_headers(response))

    @pytest.mark.asyncio
    async def test_validate_mismatch(self, make_request):
        store = CookieCorrelationStore()
        properties = AuthenticationProperties({"correlation_id": "nonce-1"})
        response = Response()

        ok = await store.validate(
            "Line", properties, make_request("/signin-line", cookies={COOKIE: "nonce-2"}), response
        )

        assert ok is False
        assert _set_cookie_headers(response)  # still cleared

    @pytest.mark.asyncio
    async def test_validate_without_cookie(self, make_request):
        store = CookieCorrelationStore()
        properties = AuthenticationProperties({"correlation_id": "nonce-1"})

        ok = await store.validate("Line", properties, make_request("/signin-line"), Response())

        assert ok is False

    @pytest.mark.asyncio
    async def test_validate_without_state_property(self, make_request):
        store = CookieCorrelationStore()

        ok = await store.validate(
            "Line",
            AuthenticationProperties(),
            make_request("/signin-line", cookies={COOKIE: "nonce-1"}),
            Response(),
        )

        assert ok is False


# =============================================================================
# Unit Tests - Redis Store
# =============================================================================


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    client = AsyncMock()
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def redis_store(mock_redis):
    connection = MagicMock()
    connection.get_client = AsyncMock(return_value=mock_redis)
    return RedisCorrelationStore(connection, ttl=300)


class TestRedisCorrelationStore:
    """Test the Redis-backed correlation store."""

    @pytest.mark.asyncio
    async def test_issue_records_key_with_ttl(self, redis_store, mock_redis, make_request):
        properties = AuthenticationProperties()

        correlation_id = await redis_store.issue("Line", properties, make_request("/"), Response())

        mock_redis.set.assert_awaited_once_with(f"correlation:Line:{correlation_id}", "1", ex=300)

    @pytest.mark.asyncio
    async def test_validate_consumes_key(self, redis_store, mock_redis, make_request):
        properties = AuthenticationProperties({"correlation_id": "nonce-1"})

        ok = await redis_store.validate(
            "Line", properties, make_request("/signin-line", cookies={COOKIE: "nonce-1"}), Response()
        )

        assert ok is True
        mock_redis.delete.assert_awaited_once_with("correlation:Line:nonce-1")

    @pytest.mark.asyncio
    async def test_validate_rejects_second_use(self, redis_store, mock_redis, make_request):
        """Test that an id already redeemed (key gone) is rejected."""
        mock_redis.delete.return_value = 0
        properties = AuthenticationProperties({"correlation_id": "nonce-1"})

        ok = await redis_store.validate(
            "Line", properties, make_request("/signin-line", cookies={COOKIE: "nonce-1"}), Response()
        )

        assert ok is False

    @pytest.mark.asyncio
    async def test_cookie_mismatch_skips_redis(self, redis_store, mock_redis, make_request):
        properties = AuthenticationProperties({"correlation_id": "nonce-1"})

        ok = await redis_store.validate(
            "Line", properties, make_request("/signin-line", cookies={COOKIE: "other"}), Response()
        )

        assert ok is False
        mock_redis.delete.assert_not_awaited()
