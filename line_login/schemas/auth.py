"""Pydantic schemas for authentication endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class AuthMessageResponse(BaseModel):
    """Schema for simple message responses."""

    message: str = Field(..., description="Response message")


class ClaimResponse(BaseModel):
    """Schema for a single claim of the signed-in identity."""

    type: str = Field(..., description="Claim type URI")
    value: str = Field(..., description="Claim value")
    issuer: str = Field(..., description="Authentication type that issued the claim")


class IdentityResponse(BaseModel):
    """Schema for the signed-in identity."""

    authentication_type: Optional[str] = Field(None, description="Sign-in authentication type")
    name: Optional[str] = Field(None, description="Display name")
    name_identifier: Optional[str] = Field(None, description="Stable user id")
    claims: list[ClaimResponse] = Field(default_factory=list, description="All claims")
