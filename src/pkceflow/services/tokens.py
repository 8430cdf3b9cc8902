"""Token endpoint and userinfo interactions.

Implements RFC 6749 token endpoint calls with PKCE (RFC 7636) plus the
userinfo lookup. Every operation is a single round-trip with no retries
and no state kept between calls.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from pkceflow.models.config import AuthorizationRequestConfig
from pkceflow.models.errors import ProfileFetchError, TokenExchangeError
from pkceflow.models.session import UserProfile
from pkceflow.models.tokens import RefreshTokenRequest, TokenRequest, TokenSet

logger = logging.getLogger(__name__)


def _response_body(response: httpx.Response) -> Any:
    """Decoded JSON body if there is one, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


class TokenExchangeClient:
    """Exchanges authorization codes and refresh tokens, and fetches profiles.

    Uses application/x-www-form-urlencoded encoding for token requests as
    required by RFC 6749. The HTTP client can be injected; one is created
    (and owned) otherwise. Timeouts are the HTTP client's policy.
    """

    def __init__(
        self, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0
    ):
        """Initialize the token exchange client.

        Args:
            http_client: Optional client to send requests through
            timeout: HTTP request timeout in seconds for an owned client
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_authorization_code(
        self, code: str, verifier: str, config: AuthorizationRequestConfig
    ) -> TokenSet:
        """Exchange an authorization code for tokens.

        The code is single-use, so a failure is never retried here.

        Args:
            code: Authorization code from the redirect
            verifier: PKCE code verifier retained from the authorization request
            config: Identity provider configuration

        Returns:
            TokenSet: Decoded tokens

        Raises:
            TokenExchangeError: On transport failure, non-200 status or an
                unusable response body
        """
        token_request = TokenRequest(
            token_endpoint=config.token_endpoint,
            code=code,
            redirect_uri=config.redirect_uri,
            client_id=config.client_id,
            code_verifier=verifier,
        )
        logger.debug(f"Exchanging authorization code at {config.token_endpoint}")

        return await self._request_tokens(
            token_request.token_endpoint, token_request.to_form_data()
        )

    async def exchange_refresh_token(
        self, refresh_token: str, config: AuthorizationRequestConfig
    ) -> TokenSet:
        """Obtain a new access token using a refresh token.

        ``TokenSet.refresh_token`` is ``None`` when the provider does not
        rotate refresh tokens; the caller keeps using the previous one.

        Raises:
            TokenExchangeError: On transport failure, non-200 status or an
                unusable response body
        """
        refresh_request = RefreshTokenRequest(
            token_endpoint=config.token_endpoint,
            refresh_token=refresh_token,
            client_id=config.client_id,
        )
        logger.debug(f"Refreshing access token at {config.token_endpoint}")

        return await self._request_tokens(
            refresh_request.token_endpoint, refresh_request.to_form_data()
        )

    async def fetch_user_profile(
        self, access_token: str, config: AuthorizationRequestConfig
    ) -> UserProfile:
        """Look up the user's profile with a valid access token.

        Raises:
            ProfileFetchError: On transport failure, non-200 status or an
                unusable response body
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        try:
            response = await self._http_client.get(
                config.userinfo_endpoint, headers=headers
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ProfileFetchError(f"HTTP error during profile fetch: {e}") from e

        body = _response_body(response)

        if response.status_code != 200:
            logger.warning(f"Profile fetch failed with {response.status_code}")
            raise ProfileFetchError(
                f"Userinfo request failed with status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        if not isinstance(body, dict):
            raise ProfileFetchError(
                "Userinfo response is not a JSON object",
                status_code=response.status_code,
                body=body,
            )

        try:
            return UserProfile.model_validate(body)
        except ValidationError as e:
            raise ProfileFetchError(
                f"Invalid userinfo response format: {e}",
                status_code=response.status_code,
                body=body,
            ) from e

    async def _request_tokens(
        self, token_endpoint: str, form_data: dict[str, str]
    ) -> TokenSet:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        # Log request details (without sensitive data)
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}"
        )

        try:
            response = await self._http_client.post(
                token_endpoint, data=form_data, headers=headers
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TokenExchangeError(
                f"HTTP error during {form_data['grant_type']} exchange: {e}"
            ) from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenSet:
        """Decode a token endpoint response (RFC 6749 Section 5).

        Raises:
            TokenExchangeError: For error responses (Section 5.2) and for
                success responses that are not a valid token set
        """
        body = _response_body(response)

        if response.status_code != 200:
            error = TokenExchangeError(
                f"Token endpoint returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
            logger.warning(
                f"Token exchange failed with {response.status_code}: "
                f"{error.error_code}"
            )
            raise error

        if not isinstance(body, dict) or "access_token" not in body:
            raise TokenExchangeError(
                "Token response missing required access_token",
                status_code=response.status_code,
                body=body,
            )

        try:
            token_set = TokenSet.model_validate(body)
        except ValidationError as e:
            raise TokenExchangeError(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
                body=body,
            ) from e

        logger.info("Token exchange successful")
        return token_set

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> TokenExchangeClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
