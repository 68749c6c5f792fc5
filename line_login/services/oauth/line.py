"""LINE Login OAuth2 client implementation.

Implements the OAuth2 authorization-code flow against LINE Login v2:
1. Generate authorization URL (web login dialog)
2. Exchange authorization code for access token
3. Fetch the user profile

LINE Login Documentation:
https://developers.line.biz/en/docs/line-login/integrate-line-login/
"""

import logging
from typing import Optional
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError

from line_login.schemas.line import LineProfile, LineTokenResponse
from line_login.services.oauth import (
    BaseOAuthClient,
    OAuthConfigurationError,
    OAuthTokenError,
    OAuthUserInfoError,
)

logger = logging.getLogger(__name__)

# LINE Login endpoints
LINE_AUTH_URL = "https://access.line.me/dialog/oauth/weblogin/"
LINE_TOKEN_URL = "https://api.line.me/v2/oauth/accessToken"
LINE_PROFILE_URL = "https://api.line.me/v2/profile"

DEFAULT_TIMEOUT = 60.0


class LineOAuthClient(BaseOAuthClient):
    """LINE Login OAuth2 client.

    Every outbound call opens its own ``httpx.AsyncClient`` so no cookies or
    connection state leak between requests. ``transport`` is only meant for
    tests and alternative network stacks.
    """

    def __init__(
        self,
        channel_id: str,
        channel_secret: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the LINE client.

        Raises:
            OAuthConfigurationError: If channel credentials are missing
        """
        if not channel_id or not channel_secret:
            raise OAuthConfigurationError(
                "LINE Login is not configured. "
                "Set LINE_CHANNEL_ID and LINE_CHANNEL_SECRET environment variables."
            )

        self.channel_id = channel_id
        self.channel_secret = channel_secret
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def get_authorization_url(self, redirect_uri: str, scopes: list[str], state: str) -> str:
        """Generate the LINE web login URL.

        Scopes are joined with a literal ``+``. The state is appended as is:
        LINE URL-decodes it once before echoing it back to the callback, so
        pre-encoding it would corrupt the value.

        Args:
            redirect_uri: Absolute callback URL
            scopes: Requested scopes
            state: Protected state parameter

        Returns:
            Authorization URL to redirect the user agent to
        """
        params = {
            "response_type": "code",
            "client_id": self.channel_id,
            "redirect_uri": redirect_uri,
        }

        url = (
            f"{LINE_AUTH_URL}?{urlencode(params, quote_via=quote, safe='')}"
            f"&scope={'+'.join(scopes)}"
            f"&state={state}"
        )
        logger.debug(f"Generated LINE auth URL with redirect_uri: {redirect_uri}")
        return url

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        """Exchange authorization code for access token.

        Args:
            code: Authorization code from callback
            redirect_uri: Redirect URI used for the authorization request

        Returns:
            Access token from LINE

        Raises:
            OAuthTokenError: If token exchange fails
        """
        data = {
            "grant_type": "authorization_code",
            "client_id": self.channel_id,
            "client_secret": self.channel_secret,
            "code": code,
            "redirect_uri": redirect_uri,
        }

        async with self._client() as client:
            try:
                response = await client.post(
                    LINE_TOKEN_URL,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during LINE token exchange: {e}")
                raise OAuthTokenError(f"Network error: {e}") from e

        if not response.is_success:
            logger.error(f"LINE token exchange failed with status {response.status_code}")
            raise OAuthTokenError(f"Token exchange failed with status {response.status_code}")

        try:
            token = LineTokenResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise OAuthTokenError(f"Malformed token response: {e.error_count()} error(s)") from e

        logger.info("Successfully exchanged LINE auth code for token")
        return token.access_token

    async def get_user_profile(self, access_token: str) -> LineProfile:
        """Fetch the user profile from LINE.

        Args:
            access_token: Valid LINE access token

        Returns:
            Parsed profile

        Raises:
            OAuthUserInfoError: If fetching or parsing the profile fails
        """
        async with self._client() as client:
            try:
                response = await client.get(
                    LINE_PROFILE_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during LINE profile fetch: {e}")
                raise OAuthUserInfoError(f"Network error: {e}") from e

        if not response.is_success:
            error_msg = f"Failed to fetch profile: status {response.status_code}"
            logger.error(f"LINE profile fetch failed: {error_msg}")
            raise OAuthUserInfoError(error_msg)

        try:
            profile = LineProfile.model_validate_json(response.content)
        except ValidationError as e:
            raise OAuthUserInfoError(f"Malformed profile response: {e.error_count()} error(s)") from e

        logger.info(f"Retrieved LINE profile for user: {profile.user_id}")
        return profile
