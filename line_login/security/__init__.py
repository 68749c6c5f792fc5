"""Claims, authentication properties, state protection and sign-in."""

from line_login.security.claims import Claim, ClaimsIdentity, ClaimTypes, LineClaimTypes
from line_login.security.properties import AuthenticationProperties, AuthenticationTicket

__all__ = [
    "AuthenticationProperties",
    "AuthenticationTicket",
    "Claim",
    "ClaimsIdentity",
    "ClaimTypes",
    "LineClaimTypes",
]
