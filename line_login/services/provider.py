"""Extensibility hooks for the LINE authentication flow.

Two caller-supplied callbacks are invoked at fixed points:
- ``on_authenticated`` after the identity is built from the LINE profile
- ``on_return_endpoint`` before the host signs the identity in and redirects

Both receive a mutable context and may be plain functions or coroutines.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from starlette.requests import Request
from starlette.responses import Response

from line_login.security.claims import ClaimsIdentity
from line_login.security.properties import AuthenticationProperties, AuthenticationTicket


@dataclass
class LineAuthenticatedContext:
    """State handed to ``on_authenticated``.

    ``user`` is the raw profile payload as returned by LINE.
    """

    request: Request
    user: dict[str, Any]
    access_token: str
    identity: Optional[ClaimsIdentity] = None
    properties: Optional[AuthenticationProperties] = None

    @property
    def user_id(self) -> Optional[str]:
        return self._string("userId")

    @property
    def display_name(self) -> Optional[str]:
        return self._string("displayName")

    @property
    def picture_url(self) -> Optional[str]:
        return self._string("pictureUrl")

    @property
    def status_message(self) -> Optional[str]:
        return self._string("statusMessage")

    def _string(self, key: str) -> Optional[str]:
        value = self.user.get(key)
        return value if isinstance(value, str) else None


@dataclass
class LineReturnEndpointContext:
    """State handed to ``on_return_endpoint``.

    Setting ``identity`` to None withholds sign-in and makes the final
    redirect carry ``error=access_denied``. Calling ``request_completed``
    suppresses the redirect; ``response`` is then returned as is.
    """

    request: Request
    ticket: AuthenticationTicket
    response: Response
    sign_in_as_authentication_type: Optional[str] = None
    redirect_uri: Optional[str] = None
    identity: Optional[ClaimsIdentity] = field(init=False)
    properties: Optional[AuthenticationProperties] = field(init=False)
    is_request_completed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.identity = self.ticket.identity
        self.properties = self.ticket.properties

    def request_completed(self) -> None:
        self.is_request_completed = True


AuthenticatedHook = Callable[[LineAuthenticatedContext], Union[None, Awaitable[None]]]
ReturnEndpointHook = Callable[[LineReturnEndpointContext], Union[None, Awaitable[None]]]


async def _invoke(hook: Optional[Callable[[Any], Any]], context: Any) -> None:
    if hook is None:
        return
    result = hook(context)
    if inspect.isawaitable(result):
        await result


class LineAuthenticationProvider:
    """Holds the caller-supplied hooks; both default to no-ops."""

    def __init__(
        self,
        on_authenticated: Optional[AuthenticatedHook] = None,
        on_return_endpoint: Optional[ReturnEndpointHook] = None,
    ):
        self.on_authenticated = on_authenticated
        self.on_return_endpoint = on_return_endpoint

    async def authenticated(self, context: LineAuthenticatedContext) -> None:
        await _invoke(self.on_authenticated, context)

    async def return_endpoint(self, context: LineReturnEndpointContext) -> None:
        await _invoke(self.on_return_endpoint, context)
