from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pkceflow.models.config import AuthorizationRequestConfig
from pkceflow.services.tokens import TokenExchangeClient


class InMemorySessionStore:
    """Session store fake that records every write."""

    def __init__(self, refresh_token: str | None = None):
        self.refresh_token = refresh_token
        self.set_calls: list[str] = []
        self.delete_calls = 0

    async def get(self) -> str | None:
        return self.refresh_token

    async def set(self, refresh_token: str) -> None:
        self.set_calls.append(refresh_token)
        self.refresh_token = refresh_token

    async def delete(self) -> None:
        self.delete_calls += 1
        self.refresh_token = None


def make_response(status_code: int, body: Any) -> MagicMock:
    """Mock httpx response with a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
        response.text = "not json"
    else:
        response.json.return_value = body
        response.text = str(body)
    return response


@pytest.fixture
def config() -> AuthorizationRequestConfig:
    return AuthorizationRequestConfig(
        domain="tenant.auth0.com",
        client_id="client-456",
        redirect_uri="com.example.app://login-callback",
        audience="https://api.example.com",
        scopes="openid profile offline_access",
    )


@pytest.fixture
def http_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def token_client(http_client: AsyncMock) -> TokenExchangeClient:
    return TokenExchangeClient(http_client=http_client)


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def store_factory():
    return InMemorySessionStore
