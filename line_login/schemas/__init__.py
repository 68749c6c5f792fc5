"""Pydantic schemas for LINE payloads and API responses."""

from line_login.schemas.auth import AuthMessageResponse, ClaimResponse, IdentityResponse
from line_login.schemas.line import LineProfile, LineTokenResponse

__all__ = [
    "AuthMessageResponse",
    "ClaimResponse",
    "IdentityResponse",
    "LineProfile",
    "LineTokenResponse",
]
