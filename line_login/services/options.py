"""Configuration of the LINE authentication handler."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from line_login.core.config import Settings, settings as default_settings
from line_login.security.challenge import AuthenticationMode
from line_login.security.state import PropertiesDataFormat, generate_state_key
from line_login.services.oauth import OAuthConfigurationError
from line_login.services.oauth.line import DEFAULT_TIMEOUT
from line_login.services.provider import LineAuthenticationProvider

logger = logging.getLogger(__name__)

DEFAULT_AUTHENTICATION_TYPE = "Line"
DEFAULT_CALLBACK_PATH = "/signin-line"


@dataclass
class LineAuthenticationOptions:
    """Handler configuration, validated on construction and shared by all requests.

    Raises:
        OAuthConfigurationError: On construction, if the configuration is unusable
    """

    channel_id: str
    channel_secret: str
    state_data_format: PropertiesDataFormat
    callback_path: str = DEFAULT_CALLBACK_PATH
    scope: list[str] = field(default_factory=lambda: ["profile"])
    authentication_type: str = DEFAULT_AUTHENTICATION_TYPE
    authentication_mode: AuthenticationMode = AuthenticationMode.PASSIVE
    sign_in_as_authentication_type: Optional[str] = None
    provider: LineAuthenticationProvider = field(default_factory=LineAuthenticationProvider)
    backchannel_timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.channel_id:
            raise OAuthConfigurationError("LINE channel id is required (LINE_CHANNEL_ID).")
        if not self.channel_secret:
            raise OAuthConfigurationError("LINE channel secret is required (LINE_CHANNEL_SECRET).")
        if not self.callback_path or not self.callback_path.startswith("/"):
            raise OAuthConfigurationError(
                f"Callback path must start with '/': {self.callback_path!r}"
            )
        if not self.authentication_type:
            raise OAuthConfigurationError("Authentication type must not be empty.")
        if self.backchannel_timeout <= 0:
            raise OAuthConfigurationError("Backchannel timeout must be positive.")
        self.authentication_mode = AuthenticationMode(self.authentication_mode)

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        provider: Optional[LineAuthenticationProvider] = None,
    ) -> "LineAuthenticationOptions":
        """Build options from application settings.

        Args:
            config: Settings to read (defaults to the global settings)
            provider: Hooks to install

        Returns:
            Validated options
        """
        config = config or default_settings

        key = config.STATE_ENCRYPTION_KEY
        if not key:
            logger.warning(
                "STATE_ENCRYPTION_KEY is not set; using an ephemeral key. "
                "Logins in flight will fail after a restart or across workers."
            )
            key = generate_state_key()

        return cls(
            channel_id=config.LINE_CHANNEL_ID,
            channel_secret=config.LINE_CHANNEL_SECRET,
            state_data_format=PropertiesDataFormat(key, ttl=config.STATE_LIFETIME_SECONDS),
            callback_path=config.LINE_CALLBACK_PATH,
            scope=list(config.LINE_SCOPES),
            authentication_type=config.LINE_AUTHENTICATION_TYPE,
            authentication_mode=AuthenticationMode(config.LINE_AUTHENTICATION_MODE),
            sign_in_as_authentication_type=config.LINE_SIGN_IN_AS_AUTHENTICATION_TYPE or None,
            provider=provider or LineAuthenticationProvider(),
            backchannel_timeout=config.LINE_BACKCHANNEL_TIMEOUT,
        )
