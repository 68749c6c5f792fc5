"""Correlation (anti-CSRF) stores for the OAuth round trip.

A correlation id is issued when a challenge starts. It is written into the
protected state and recorded on the user agent's side; the callback is only
accepted when both copies match. Records are single use: validation clears
them whatever the outcome.

This module provides:
- CookieCorrelationStore: records the id in an HttpOnly cookie
- RedisCorrelationStore: cookie binding plus a server-side record with TTL
"""

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from line_login.core.redis import RedisConnection
from line_login.security.properties import AuthenticationProperties
from line_login.services.oauth import generate_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_COOKIE_PREFIX = "line_login_correlation"
CORRELATION_KEY_PREFIX = "correlation"
DEFAULT_CORRELATION_TTL = 900  # 15 minutes


class CorrelationStore(ABC):
    """Issues and validates correlation ids for one authentication type."""

    @abstractmethod
    async def issue(
        self,
        authentication_type: str,
        properties: AuthenticationProperties,
        request: Request,
        response: Response,
    ) -> str:
        """Generate a correlation id, record it and embed it into ``properties``.

        Returns:
            The new correlation id
        """
        pass

    @abstractmethod
    async def validate(
        self,
        authentication_type: str,
        properties: AuthenticationProperties,
        request: Request,
        response: Response,
    ) -> bool:
        """Check the id embedded in ``properties`` against the recorded one.

        The id is removed from ``properties`` and the record is cleared.

        Returns:
            True if the ids match
        """
        pass


class CookieCorrelationStore(CorrelationStore):
    """Keeps the correlation id in a short-lived HttpOnly cookie."""

    def __init__(self, max_age: int = DEFAULT_CORRELATION_TTL, path: str = "/"):
        self.max_age = max_age
        self.path = path

    @staticmethod
    def cookie_name(authentication_type: str) -> str:
        return f"{CORRELATION_COOKIE_PREFIX}_{authentication_type}"

    async def issue(
        self,
        authentication_type: str,
        properties: AuthenticationProperties,
        request: Request,
        response: Response,
    ) -> str:
        correlation_id = generate_correlation_id()
        response.set_cookie(
            self.cookie_name(authentication_type),
            correlation_id,
            max_age=self.max_age,
            path=self.path,
            httponly=True,
            secure=request.url.scheme == "https",
            samesite="lax",
        )
        properties.correlation_id = correlation_id
        return correlation_id

    async def validate(
        self,
        authentication_type: str,
        properties: AuthenticationProperties,
        request: Request,
        response: Response,
    ) -> bool:
        name = self.cookie_name(authentication_type)
        cookie_value = request.cookies.get(name)
        if not cookie_value:
            logger.warning(f"{name} cookie not found.")
            return False

        response.delete_cookie(name, path=self.path)

        expected = properties.correlation_id
        properties.correlation_id = None
        if not expected:
            logger.warning("Correlation id missing from state.")
            return False

        if not hmac.compare_digest(cookie_value, expected):
            logger.warning(f"{name} state property mismatch.")
            return False

        return True


class RedisCorrelationStore(CookieCorrelationStore):
    """Cookie correlation plus a single-use server-side record.

    The cookie binds the callback to the browser that started the flow; the
    Redis key makes each id redeemable once and expire after ``ttl`` seconds,
    even if the cookie is replayed.
    """

    def __init__(
        self,
        connection: RedisConnection,
        ttl: int = DEFAULT_CORRELATION_TTL,
        path: str = "/",
    ):
        super().__init__(max_age=ttl, path=path)
        self.connection = connection
        self.ttl = ttl

    @staticmethod
    def _key(authentication_type: str, correlation_id: str) -> str:
        return f"{CORRELATION_KEY_PREFIX}:{authentication_type}:{correlation_id}"

    async def issue(
        self,
        authentication_type: str,
        properties: AuthenticationProperties,
        request: Request,
        response: Response,
    ) -> str:
        correlation_id = await super().issue(authentication_type, properties, request, response)
        client = await self.connection.get_client()
        await client.set(self._key(authentication_type, correlation_id), "1", ex=self.ttl)
        return correlation_id

    async def validate(
        self,
        authentication_type: str,
        properties: AuthenticationProperties,
        request: Request,
        response: Response,
    ) -> bool:
        correlation_id: Optional[str] = properties.correlation_id
        if not await super().validate(authentication_type, properties, request, response):
            return False

        client = await self.connection.get_client()
        # DEL reports how many keys it removed, so only the first redemption sees 1
        removed = await client.delete(self._key(authentication_type, correlation_id))
        if removed != 1:
            logger.warning("Correlation id already used or expired.")
            return False

        return True
