"""Sign-in machinery for the host application.

The LINE handler only produces an identity; turning it into a session is the
job of a SignInManager. The default implementation stores the identity's
claims in a signed JWT cookie.
"""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from starlette.requests import Request
from starlette.responses import Response

from line_login.core.config import settings
from line_login.security.claims import Claim, ClaimsIdentity, ClaimTypes, LineClaimTypes
from line_login.security.properties import AuthenticationProperties

logger = logging.getLogger(__name__)


class SignInManager(ABC):
    """Issues and reads the host's authenticated session."""

    @abstractmethod
    async def sign_in(
        self,
        response: Response,
        identity: ClaimsIdentity,
        properties: Optional[AuthenticationProperties] = None,
    ) -> None:
        """Attach a session for ``identity`` to ``response``."""
        pass

    @abstractmethod
    def authenticate(self, request: Request) -> Optional[ClaimsIdentity]:
        """Return the signed-in identity of ``request``, if any."""
        pass

    @abstractmethod
    def sign_out(self, response: Response) -> None:
        pass


class JWTCookieSignInManager(SignInManager):
    """Keeps the signed-in identity in a JWT cookie.

    Claims listed in ``transient_claim_types`` (by default the LINE access
    token) are dropped from the cookie: a JWT is signed, not encrypted.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        cookie_name: Optional[str] = None,
        expire_minutes: Optional[int] = None,
        secure: Optional[bool] = None,
        transient_claim_types: frozenset[str] = frozenset({LineClaimTypes.ACCESS_TOKEN}),
    ):
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.cookie_name = cookie_name or settings.AUTH_COOKIE_NAME
        self.expire_minutes = expire_minutes or settings.AUTH_COOKIE_EXPIRE_MINUTES
        self.secure = settings.AUTH_COOKIE_SECURE if secure is None else secure
        self.transient_claim_types = transient_claim_types

    def create_token(self, identity: ClaimsIdentity) -> str:
        """Encode an identity as a JWT.

        Args:
            identity: Authenticated identity

        Returns:
            Signed JWT string
        """
        now = datetime.now(UTC)
        expire = now + timedelta(minutes=self.expire_minutes)
        subject = identity.find_first(ClaimTypes.NAME_IDENTIFIER)

        payload = {
            "auth_type": identity.authentication_type,
            "claims": [
                {"type": c.type, "value": c.value, "issuer": c.issuer}
                for c in identity.claims
                if c.type not in self.transient_claim_types
            ],
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
        }
        if subject:
            payload["sub"] = subject.value

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Optional[ClaimsIdentity]:
        """Decode a JWT back into an identity.

        Returns:
            The identity, or None if the token is invalid or expired
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Sign-in cookie decode error: {e}")
            return None

        claims = [
            Claim(type=c["type"], value=c["value"], issuer=c.get("issuer", ""))
            for c in payload.get("claims", [])
        ]
        return ClaimsIdentity(payload.get("auth_type"), claims)

    async def sign_in(
        self,
        response: Response,
        identity: ClaimsIdentity,
        properties: Optional[AuthenticationProperties] = None,
    ) -> None:
        token = self.create_token(identity)
        persistent = properties is not None and properties.is_persistent
        response.set_cookie(
            self.cookie_name,
            token,
            max_age=self.expire_minutes * 60 if persistent else None,
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )
        logger.info(f"Signed in identity as {identity.authentication_type}")

    def authenticate(self, request: Request) -> Optional[ClaimsIdentity]:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        return self.decode_token(token)

    def sign_out(self, response: Response) -> None:
        response.delete_cookie(self.cookie_name, httponly=True, secure=self.secure, samesite="lax")
