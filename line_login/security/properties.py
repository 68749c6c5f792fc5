"""Authentication properties and tickets.

Properties are the caller state that travels through the provider round trip
(inside the protected ``state`` parameter). A ticket pairs the outcome of an
authentication attempt with those properties.
"""

from dataclasses import dataclass, field
from typing import Optional

from line_login.security.claims import ClaimsIdentity

REDIRECT_URI_KEY = "redirect_uri"
CORRELATION_KEY = "correlation_id"
PERSISTENT_KEY = "persistent"


@dataclass
class AuthenticationProperties:
    """String dictionary of caller state with typed accessors for known keys."""

    items: dict[str, str] = field(default_factory=dict)

    @property
    def redirect_uri(self) -> Optional[str]:
        return self.items.get(REDIRECT_URI_KEY)

    @redirect_uri.setter
    def redirect_uri(self, value: Optional[str]) -> None:
        self._set(REDIRECT_URI_KEY, value)

    @property
    def correlation_id(self) -> Optional[str]:
        return self.items.get(CORRELATION_KEY)

    @correlation_id.setter
    def correlation_id(self, value: Optional[str]) -> None:
        self._set(CORRELATION_KEY, value)

    @property
    def is_persistent(self) -> bool:
        return self.items.get(PERSISTENT_KEY) == "true"

    @is_persistent.setter
    def is_persistent(self, value: bool) -> None:
        self._set(PERSISTENT_KEY, "true" if value else None)

    def _set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self.items.pop(key, None)
        else:
            self.items[key] = value


@dataclass
class AuthenticationTicket:
    """Result of an authentication attempt.

    ``identity`` is None when authentication failed; ``properties`` is None
    when the state could not even be decoded. ``failure`` carries the error
    that ended the attempt, if any.
    """

    identity: Optional[ClaimsIdentity]
    properties: Optional[AuthenticationProperties]
    failure: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.identity is not None
