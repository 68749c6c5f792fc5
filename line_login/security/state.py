"""Protection of the OAuth ``state`` parameter.

The state is the only thing the provider hands back to us, so it carries the
authentication properties across the round trip. It is sealed with Fernet
(AES-CBC + HMAC-SHA256): the provider can neither read nor alter it, and the
embedded timestamp lets us reject stale values.
"""

import json
import logging
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from line_login.security.properties import AuthenticationProperties
from line_login.services.oauth import OAuthConfigurationError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def generate_state_key() -> str:
    """Key for PropertiesDataFormat, suitable for STATE_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode("utf-8")


class PropertiesDataFormat:
    """Serializes AuthenticationProperties into a protected, URL-safe string.

    Fernet instances hold no mutable state, so one formatter can be shared by
    all concurrent requests.
    """

    def __init__(self, key: Union[str, bytes], ttl: Optional[int] = None):
        """
        Args:
            key: Fernet key (urlsafe base64 of 32 bytes)
            ttl: Maximum age in seconds of a state accepted by ``unprotect``

        Raises:
            OAuthConfigurationError: If the key is not a valid Fernet key
        """
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise OAuthConfigurationError(f"Invalid state encryption key: {e}") from e
        self.ttl = ttl

    def protect(self, properties: AuthenticationProperties) -> str:
        payload = json.dumps(
            {"v": FORMAT_VERSION, "items": properties.items},
            separators=(",", ":"),
        )
        return self._fernet.encrypt(payload.encode("utf-8")).decode("ascii")

    def unprotect(self, protected: Optional[str]) -> Optional[AuthenticationProperties]:
        """Open a protected state.

        Returns:
            The properties, or None if the value is missing, tampered with,
            expired or not produced by ``protect``
        """
        if not protected:
            return None

        try:
            payload = self._fernet.decrypt(protected.encode("ascii"), ttl=self.ttl)
        except (InvalidToken, UnicodeEncodeError):
            logger.warning("State rejected: invalid signature or expired")
            return None

        try:
            data = json.loads(payload)
        except ValueError:
            logger.warning("State rejected: payload is not JSON")
            return None

        if not isinstance(data, dict) or data.get("v") != FORMAT_VERSION:
            logger.warning("State rejected: unknown format version")
            return None

        items = data.get("items")
        if not isinstance(items, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in items.items()
        ):
            logger.warning("State rejected: malformed items")
            return None

        return AuthenticationProperties(items=dict(items))
