"""Pytest configuration and shared fixtures for LINE Login tests."""

import os
from typing import Optional

import pytest
from starlette.requests import Request

# Set test environment BEFORE importing application modules
os.environ.setdefault("ENVIRONMENT", "test")

from line_login.schemas.line import LineProfile
from line_login.security.challenge import AuthenticationMode
from line_login.security.state import PropertiesDataFormat, generate_state_key
from line_login.services.oauth import BaseOAuthClient, LineOAuthClient
from line_login.services.options import LineAuthenticationOptions
from line_login.services.provider import LineAuthenticationProvider


class FakeLineClient(BaseOAuthClient):
    """In-memory LINE client recording every backchannel call."""

    def __init__(self, channel_id: str = "abc", channel_secret: str = "secret"):
        self._url_builder = LineOAuthClient(channel_id, channel_secret)
        self.access_token = "line-access-token"
        self.profile_payload: dict = {
            "userId": "U1",
            "displayName": "Alice",
            "pictureUrl": "https://profile.line-scdn.net/alice",
        }
        self.token_error: Optional[Exception] = None
        self.profile_error: Optional[Exception] = None
        self.calls: list[tuple] = []

    def get_authorization_url(self, redirect_uri: str, scopes: list[str], state: str) -> str:
        return self._url_builder.get_authorization_url(redirect_uri, scopes, state)

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        self.calls.append(("token", code, redirect_uri))
        if self.token_error:
            raise self.token_error
        return self.access_token

    async def get_user_profile(self, access_token: str) -> LineProfile:
        self.calls.append(("profile", access_token))
        if self.profile_error:
            raise self.profile_error
        return LineProfile.model_validate(self.profile_payload)


@pytest.fixture
def state_key() -> str:
    """A fresh Fernet key per test."""
    return generate_state_key()


@pytest.fixture
def data_format(state_key) -> PropertiesDataFormat:
    return PropertiesDataFormat(state_key, ttl=900)


@pytest.fixture
def provider() -> LineAuthenticationProvider:
    return LineAuthenticationProvider()


@pytest.fixture
def options(data_format, provider) -> LineAuthenticationOptions:
    """LINE options for channel 'abc' requesting profile and openid."""
    return LineAuthenticationOptions(
        channel_id="abc",
        channel_secret="secret",
        state_data_format=data_format,
        scope=["profile", "openid"],
        authentication_type="Line",
        authentication_mode=AuthenticationMode.PASSIVE,
        sign_in_as_authentication_type="Cookies",
        provider=provider,
    )


@pytest.fixture
def fake_client() -> FakeLineClient:
    return FakeLineClient()


@pytest.fixture
def make_request():
    """Factory building a Starlette request from path, query and cookies."""

    def _make_request(
        path: str = "/",
        query: str = "",
        cookies: Optional[dict[str, str]] = None,
        scheme: str = "http",
        host: str = "testserver",
        root_path: str = "",
    ) -> Request:
        headers = [(b"host", host.encode())]
        if cookies:
            cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
            headers.append((b"cookie", cookie_header.encode()))
        scope = {
            "type": "http",
            "method": "GET",
            "scheme": scheme,
            "server": (host, 443 if scheme == "https" else 80),
            "root_path": root_path,
            "path": root_path + path,
            "raw_path": (root_path + path).encode(),
            "query_string": query.encode(),
            "headers": headers,
        }
        return Request(scope)

    return _make_request
