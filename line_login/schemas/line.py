"""Pydantic schemas for LINE Login API payloads.

LINE API reference:
https://developers.line.biz/en/reference/line-login/
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LineTokenResponse(BaseModel):
    """Body of a successful ``POST /v2/oauth/accessToken`` response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1, description="Bearer access token")
    token_type: Optional[str] = Field(None, description="Token type ('Bearer')")
    expires_in: Optional[int] = Field(None, description="Access token lifetime in seconds")
    refresh_token: Optional[str] = Field(None, description="Refresh token (unused)")
    scope: Optional[str] = Field(None, description="Granted scopes")


class LineProfile(BaseModel):
    """Body of a ``GET /v2/profile`` response.

    Unknown fields are kept so the raw payload can be handed to the
    authenticated hook unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1, description="Stable LINE user id")
    display_name: Optional[str] = Field(None, alias="displayName")
    picture_url: Optional[str] = Field(None, alias="pictureUrl")
    status_message: Optional[str] = Field(None, alias="statusMessage")

    @property
    def raw(self) -> dict[str, Any]:
        """The profile as LINE sent it (wire field names, extra fields included)."""
        return self.model_dump(by_alias=True, exclude_unset=True)
