"""API router for authentication endpoints.

Provides endpoints for:
- Starting a LINE login (explicit challenge)
- Get current identity
- Logout
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response

from line_login.security.challenge import challenge
from line_login.security.claims import ClaimsIdentity, ClaimTypes
from line_login.security.properties import AuthenticationProperties
from line_login.security.sign_in import SignInManager
from line_login.schemas.auth import AuthMessageResponse, ClaimResponse, IdentityResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def is_local_redirect(request: Request, redirect_uri: str) -> bool:
    """True for a path on this site or an absolute URL with the request's scheme and host."""
    if any(c in redirect_uri for c in "\\\t\r\n"):
        return False
    target = urlsplit(redirect_uri)
    if not target.scheme and not target.netloc:
        return redirect_uri.startswith("/") and not redirect_uri.startswith("//")
    return target.scheme == request.url.scheme and target.netloc == request.url.netloc


def get_sign_in_manager(request: Request) -> SignInManager:
    """Dependency returning the sign-in manager installed on the app."""
    return request.app.state.sign_in_manager


def get_current_identity(
    request: Request,
    sign_in_manager: SignInManager = Depends(get_sign_in_manager),
) -> ClaimsIdentity:
    """Dependency returning the signed-in identity.

    Raises:
        HTTPException: 401 if nobody is signed in
    """
    identity = sign_in_manager.authenticate(request)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return identity


@router.get(
    "/line/login",
    summary="Initiate LINE login",
    description="Redirect the user agent to LINE Login.",
)
async def line_login(
    request: Request,
    redirect_uri: Optional[str] = Query(None, description="Where to land after login"),
    remember_me: bool = Query(False, description="Issue a persistent sign-in cookie"),
) -> Response:
    """
    Initiate the LINE Login flow.

    Records an explicit challenge for the LINE authentication type and answers
    401; the LINE middleware turns it into the redirect to LINE.

    Args:
        request: Current request
        redirect_uri: Final redirect target once signed in
        remember_me: Whether the sign-in cookie should outlive the browser session

    Raises:
        HTTPException: 400 if redirect_uri points to another site
    """
    if redirect_uri and not is_local_redirect(request, redirect_uri):
        logger.warning(f"Rejected off-site redirect_uri: {redirect_uri}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="redirect_uri must point to this site",
        )

    properties = AuthenticationProperties()
    properties.redirect_uri = redirect_uri or str(request.url_for("get_me"))
    properties.is_persistent = remember_me

    authentication_type = request.app.state.line_authentication_type
    logger.info(f"Starting {authentication_type} login")
    return challenge(request, authentication_type, properties=properties)


@router.get(
    "/me",
    response_model=IdentityResponse,
    summary="Get current identity",
    description="Get the claims of the currently signed-in identity.",
)
async def get_me(
    identity: ClaimsIdentity = Depends(get_current_identity),
) -> IdentityResponse:
    """
    Get the current identity.

    Returns:
        IdentityResponse: Authentication type, name and claims

    Raises:
        HTTPException: 401 if not authenticated
    """
    name_identifier = identity.find_first(ClaimTypes.NAME_IDENTIFIER)
    return IdentityResponse(
        authentication_type=identity.authentication_type,
        name=identity.name,
        name_identifier=name_identifier.value if name_identifier else None,
        claims=[
            ClaimResponse(type=c.type, value=c.value, issuer=c.issuer) for c in identity.claims
        ],
    )


@router.post(
    "/logout",
    response_model=AuthMessageResponse,
    summary="Logout",
    description="Clear the sign-in cookie.",
)
async def logout(
    sign_in_manager: SignInManager = Depends(get_sign_in_manager),
) -> JSONResponse:
    """
    Logout the current user by clearing the sign-in cookie.

    Returns:
        AuthMessageResponse: Confirmation message
    """
    response = JSONResponse(AuthMessageResponse(message="Successfully logged out").model_dump())
    sign_in_manager.sign_out(response)
    return response
