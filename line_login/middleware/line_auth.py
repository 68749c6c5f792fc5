"""LINE authentication middleware.

This module plugs the LineAuthenticationHandler into the ASGI pipeline:
- Requests to the callback path are answered by the handler
- 401 responses from downstream are turned into LINE challenges when a
  challenge applies to this provider
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from line_login.services.line_handler import PENDING_RESPONSE_STATE_KEY, LineAuthenticationHandler


def _merge_set_cookie(source: Response, target: Response) -> None:
    for key, value in source.raw_headers:
        if key == b"set-cookie":
            target.raw_headers.append((key, value))


class LineAuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware driving the LINE Login flow.

    Usage:
        app.add_middleware(LineAuthenticationMiddleware, handler=handler)
    """

    def __init__(self, app: ASGIApp, handler: LineAuthenticationHandler):
        super().__init__(app)
        self.handler = handler

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self.handler.is_callback_request(request):
            reply = await self.handler.invoke_reply_path(request)
            if reply is not None:
                return reply

        response = await call_next(request)

        pending = getattr(request.state, PENDING_RESPONSE_STATE_KEY, None)
        if pending is not None:
            _merge_set_cookie(pending, response)

        return await self.handler.apply_response_challenge(request, response)
