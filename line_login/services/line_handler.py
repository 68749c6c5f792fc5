"""LINE authentication handler.

Drives the OAuth2 authorization-code flow for one provider inside the host
pipeline:
1. Challenge: turn an applicable 401 into a redirect to LINE
2. Callback: validate state and correlation, exchange the code, fetch the
   profile and build the identity
3. Return endpoint: sign the identity in and redirect to the original target
"""

import logging
from typing import Optional

import httpx
from starlette.requests import Request
from starlette.responses import Response

from line_login.security.challenge import lookup_challenge
from line_login.security.claims import (
    XML_SCHEMA_STRING,
    Claim,
    ClaimsIdentity,
    ClaimTypes,
    LineClaimTypes,
)
from line_login.security.correlation import CookieCorrelationStore, CorrelationStore
from line_login.security.properties import AuthenticationProperties, AuthenticationTicket
from line_login.security.sign_in import SignInManager
from line_login.services.oauth import (
    AccessDeniedError,
    BaseOAuthClient,
    CorrelationMismatchError,
    HookError,
    LineOAuthClient,
    MalformedCallbackError,
    OAuthError,
    StateDecodeError,
)
from line_login.services.options import LineAuthenticationOptions
from line_login.services.provider import LineAuthenticatedContext, LineReturnEndpointContext

logger = logging.getLogger(__name__)

PENDING_RESPONSE_STATE_KEY = "line_login_pending_response"


def _request_path(request: Request) -> str:
    """Request path relative to the application's root path."""
    path = request.scope.get("path", "/")
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path):]
    return path or "/"


class LineAuthenticationHandler:
    """Challenge initiator and callback processor for LINE Login.

    One handler serves all requests; per-request state lives on the request
    and response objects only.
    """

    def __init__(
        self,
        options: LineAuthenticationOptions,
        correlation_store: Optional[CorrelationStore] = None,
        sign_in_manager: Optional[SignInManager] = None,
        client: Optional[BaseOAuthClient] = None,
    ):
        self.options = options
        self.correlation_store = correlation_store or CookieCorrelationStore()
        self.sign_in_manager = sign_in_manager
        self.client = client or LineOAuthClient(
            options.channel_id,
            options.channel_secret,
            timeout=options.backchannel_timeout,
        )

    # -------------------------------------------------------------------------
    # URLs
    # -------------------------------------------------------------------------

    @staticmethod
    def _base_uri(request: Request) -> str:
        return f"{request.url.scheme}://{request.url.netloc}{request.scope.get('root_path', '')}"

    def build_redirect_uri(self, request: Request) -> str:
        """Absolute callback URL: scheme, host, path base and callback path."""
        return self._base_uri(request) + self.options.callback_path

    def build_current_uri(self, request: Request) -> str:
        uri = self._base_uri(request) + _request_path(request)
        if request.url.query:
            uri += f"?{request.url.query}"
        return uri

    def is_callback_request(self, request: Request) -> bool:
        return _request_path(request) == self.options.callback_path

    # -------------------------------------------------------------------------
    # Challenge
    # -------------------------------------------------------------------------

    async def apply_response_challenge(self, request: Request, response: Response) -> Response:
        """Replace an applicable 401 response with a redirect to LINE.

        Args:
            request: Current request
            response: Response produced by the rest of the pipeline

        Returns:
            The redirect, or ``response`` unchanged if no challenge applies
        """
        if response.status_code != 401:
            return response

        found = lookup_challenge(
            request, self.options.authentication_type, self.options.authentication_mode
        )
        if found is None:
            return response

        properties = found.properties
        if not properties.redirect_uri:
            properties.redirect_uri = self.build_current_uri(request)

        redirect = Response(status_code=302)

        # OAuth2 10.12 CSRF
        await self.correlation_store.issue(
            self.options.authentication_type, properties, request, redirect
        )

        state = self.options.state_data_format.protect(properties)
        authorization_url = self.client.get_authorization_url(
            self.build_redirect_uri(request), self.options.scope, state
        )
        redirect.headers["location"] = authorization_url

        logger.info(f"Challenging with {self.options.authentication_type}")
        return redirect

    # -------------------------------------------------------------------------
    # Callback
    # -------------------------------------------------------------------------

    @staticmethod
    def _single_query_value(request: Request, name: str) -> Optional[str]:
        values = request.query_params.getlist(name)
        return values[0] if len(values) == 1 else None

    def build_identity(self, context: LineAuthenticatedContext) -> ClaimsIdentity:
        """Map the LINE profile and access token to claims.

        The display name is emitted twice, as the standard name claim and as
        the LINE-namespaced one.
        """
        issuer = self.options.authentication_type
        identity = ClaimsIdentity(self.options.authentication_type)

        def add(claim_type: str, value: Optional[str]) -> None:
            if value:
                identity.add_claim(Claim(claim_type, value, XML_SCHEMA_STRING, issuer))

        add(ClaimTypes.NAME_IDENTIFIER, context.user_id)
        add(ClaimTypes.NAME, context.display_name)
        add(LineClaimTypes.NAME, context.display_name)
        add(LineClaimTypes.PROFILE_PICTURE, context.picture_url)
        add(LineClaimTypes.ACCESS_TOKEN, context.access_token)
        return identity

    async def authenticate(self, request: Request, response: Response) -> AuthenticationTicket:
        """Process the callback request into a ticket.

        Never raises for protocol, upstream or hook failures: they are logged
        and returned as a ticket without identity whose ``failure`` holds the
        error.

        Args:
            request: The callback request
            response: Pending response; correlation cleanup cookies go here

        Returns:
            AuthenticationTicket
        """
        properties: Optional[AuthenticationProperties] = None

        try:
            code = self._single_query_value(request, "code")
            state = self._single_query_value(request, "state")

            properties = self.options.state_data_format.unprotect(state)
            if properties is None:
                raise StateDecodeError("The state parameter is missing or invalid.")

            # OAuth2 10.12 CSRF
            try:
                correlated = await self.correlation_store.validate(
                    self.options.authentication_type, properties, request, response
                )
            except Exception as e:
                raise CorrelationMismatchError(f"Correlation check failed: {e}") from e
            if not correlated:
                return AuthenticationTicket(
                    None, properties, CorrelationMismatchError("Correlation failed.")
                )

            error = request.query_params.get("error")
            if error:
                description = request.query_params.get("error_description") or error
                raise AccessDeniedError(f"LINE returned an error: {description}")

            if code is None:
                raise MalformedCallbackError("The code parameter is missing or repeated.")

            redirect_uri = self.build_redirect_uri(request)
            access_token = await self.client.exchange_code_for_token(code, redirect_uri)
            profile = await self.client.get_user_profile(access_token)

            context = LineAuthenticatedContext(
                request=request,
                user=profile.raw,
                access_token=access_token,
                properties=properties,
            )
            context.identity = self.build_identity(context)

            try:
                await self.options.provider.authenticated(context)
            except Exception as e:
                raise HookError(f"Authenticated hook failed: {e}") from e

            return AuthenticationTicket(context.identity, context.properties)

        except StateDecodeError as e:
            logger.warning(str(e))
            return AuthenticationTicket(None, None, e)
        except (AccessDeniedError, MalformedCallbackError) as e:
            logger.warning(str(e))
            return AuthenticationTicket(None, properties, e)
        except OAuthError as e:
            logger.error(str(e))
            return AuthenticationTicket(None, properties, e)
        except Exception as e:
            logger.error(f"Unexpected error during LINE authentication: {e}")
            return AuthenticationTicket(None, properties, e)

    # -------------------------------------------------------------------------
    # Return endpoint
    # -------------------------------------------------------------------------

    async def invoke_reply_path(self, request: Request) -> Optional[Response]:
        """Handle the callback path.

        Returns:
            The response to send, or None if the request should continue down
            the pipeline
        """
        if not self.is_callback_request(request):
            return None

        response = Response(status_code=200)
        ticket = await self.authenticate(request, response)

        if ticket.properties is None or isinstance(ticket.failure, CorrelationMismatchError):
            logger.warning("Invalid return state, unable to redirect.")
            response.status_code = 500
            return response

        context = LineReturnEndpointContext(
            request=request,
            ticket=ticket,
            response=response,
            sign_in_as_authentication_type=self.options.sign_in_as_authentication_type,
            redirect_uri=ticket.properties.redirect_uri,
        )

        try:
            await self.options.provider.return_endpoint(context)
        except Exception as e:
            logger.error(f"Return endpoint hook failed: {e}")
            return Response(status_code=500)

        response = context.response

        if context.sign_in_as_authentication_type and context.identity is not None:
            grant_identity = context.identity
            if grant_identity.authentication_type != context.sign_in_as_authentication_type:
                grant_identity = grant_identity.with_authentication_type(
                    context.sign_in_as_authentication_type
                )
            if self.sign_in_manager is not None:
                await self.sign_in_manager.sign_in(response, grant_identity, context.properties)
            else:
                logger.warning("No sign-in manager configured; identity was not signed in.")

        if context.is_request_completed:
            return response

        if context.redirect_uri is None:
            setattr(request.state, PENDING_RESPONSE_STATE_KEY, response)
            return None

        redirect_uri = context.redirect_uri
        if context.identity is None:
            # add a redirect hint that sign-in failed in some way
            redirect_uri = str(httpx.URL(redirect_uri).copy_add_param("error", "access_denied"))

        response.status_code = 302
        response.headers["location"] = redirect_uri
        context.request_completed()
        return response
