"""OAuth2 client for the LINE Login provider.

This module provides:
- The OAuth error hierarchy shared by the client and the callback handler
- The BaseOAuthClient interface (authorization URL, token exchange, profile)
- Correlation id generation for CSRF protection

The LINE implementation lives in ``line_login.services.oauth.line``.
"""

import secrets
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from line_login.schemas.line import LineProfile


class OAuthError(Exception):
    """Base exception for OAuth errors."""

    pass


class OAuthConfigurationError(OAuthError):
    """Raised when the provider is not properly configured."""

    pass


class MalformedCallbackError(OAuthError):
    """Raised when the callback is missing a required query parameter."""

    pass


class StateDecodeError(OAuthError):
    """Raised when the state parameter cannot be unprotected."""

    pass


class CorrelationMismatchError(OAuthError):
    """Raised when the correlation id in the state doesn't match the one issued."""

    pass


class AccessDeniedError(OAuthError):
    """Raised when the provider reports that the user refused authorization."""

    pass


class OAuthTokenError(OAuthError):
    """Raised when token exchange fails."""

    pass


class OAuthUserInfoError(OAuthError):
    """Raised when fetching the user profile fails."""

    pass


class HookError(OAuthError):
    """Raised when a caller-supplied provider hook fails."""

    pass


class BaseOAuthClient(ABC):
    """Abstract base class for OAuth2 authorization-code clients."""

    @abstractmethod
    def get_authorization_url(self, redirect_uri: str, scopes: list[str], state: str) -> str:
        """Generate the OAuth authorization URL.

        Args:
            redirect_uri: Absolute callback URL registered with the provider
            scopes: Requested scopes
            state: Protected state parameter

        Returns:
            Authorization URL to redirect the user agent to
        """
        pass

    @abstractmethod
    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            redirect_uri: The same redirect URI sent with the authorization request

        Returns:
            Access token

        Raises:
            OAuthTokenError: If token exchange fails
        """
        pass

    @abstractmethod
    async def get_user_profile(self, access_token: str) -> "LineProfile":
        """Fetch the user profile with a bearer token.

        Raises:
            OAuthUserInfoError: If fetching or parsing the profile fails
        """
        pass


def generate_correlation_id() -> str:
    """Generate an unpredictable correlation id for OAuth CSRF protection.

    Returns:
        43-character URL-safe random string (256 bits of entropy)
    """
    return secrets.token_urlsafe(32)


# Re-export the client for convenience
from line_login.services.oauth.line import LineOAuthClient  # noqa: E402

__all__ = [
    "OAuthError",
    "OAuthConfigurationError",
    "MalformedCallbackError",
    "StateDecodeError",
    "CorrelationMismatchError",
    "AccessDeniedError",
    "OAuthTokenError",
    "OAuthUserInfoError",
    "HookError",
    "BaseOAuthClient",
    "LineOAuthClient",
    "generate_correlation_id",
]
