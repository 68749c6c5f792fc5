"""Authentication challenges.

An endpoint that needs an external login records a challenge on the request
and answers 401; authentication middlewares inspect the outgoing 401 and
decide whether the challenge is theirs to apply.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from line_login.security.properties import AuthenticationProperties

CHALLENGE_STATE_KEY = "authentication_challenge"


class AuthenticationMode(str, Enum):
    """How a provider reacts to 401 responses."""

    ACTIVE = "active"  # challenge every 401
    PASSIVE = "passive"  # challenge only when explicitly named


@dataclass
class AuthenticationChallenge:
    """A challenge recorded by an endpoint for the middlewares to apply."""

    authentication_types: list[str] = field(default_factory=list)
    properties: AuthenticationProperties = field(default_factory=AuthenticationProperties)


def challenge(
    request: Request,
    *authentication_types: str,
    properties: Optional[AuthenticationProperties] = None,
) -> Response:
    """Record a challenge for the given authentication types.

    Usage:
        @router.get("/login")
        async def login(request: Request):
            return challenge(request, "Line")

    Returns:
        An empty 401 response for the endpoint to return
    """
    setattr(
        request.state,
        CHALLENGE_STATE_KEY,
        AuthenticationChallenge(
            authentication_types=list(authentication_types),
            properties=properties or AuthenticationProperties(),
        ),
    )
    return Response(status_code=401)


def lookup_challenge(
    request: Request,
    authentication_type: str,
    mode: AuthenticationMode,
) -> Optional[AuthenticationChallenge]:
    """Find the challenge that applies to ``authentication_type``, if any.

    A challenge naming no types applies to active providers only; without
    any recorded challenge, active providers get a fresh one.
    """
    recorded: Optional[AuthenticationChallenge] = getattr(
        request.state, CHALLENGE_STATE_KEY, None
    )

    if recorded is None:
        if mode == AuthenticationMode.ACTIVE:
            return AuthenticationChallenge()
        return None

    if not recorded.authentication_types:
        return recorded if mode == AuthenticationMode.ACTIVE else None

    if authentication_type in recorded.authentication_types:
        return recorded

    return None
