"""Exception hierarchy for PKCE login errors.

Provides specific exception types for different failure modes to enable
precise error handling and recovery strategies. Every error exposes an
``error_code`` that callers can surface to the user.
"""

from __future__ import annotations

from typing import Any


class OAuth2Error(Exception):
    """Base exception for all login flow errors."""

    error_code: str = "oauth2_error"


class ConfigurationError(OAuth2Error):
    """Raised when required login configuration is missing."""

    error_code = "configuration_error"


class CryptoUnavailableError(OAuth2Error):
    """Raised when the secure random source cannot produce a code verifier.

    Fatal: no login attempt can proceed without a verifier.
    """

    error_code = "crypto_unavailable"


class CallbackError(OAuth2Error):
    """Raised when the identity provider redirect does not carry a code."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code


class MalformedCallbackError(CallbackError):
    """Raised when a redirect URL has neither ``code`` nor ``error``."""

    error_code = "malformed_callback"


class ProviderDeniedError(CallbackError):
    """Raised when the identity provider redirected back with an ``error``."""

    def __init__(self, error_code: str, error_description: str | None = None):
        super().__init__(
            f"Authorization denied: {error_code}"
            f"{f' ({error_description})' if error_description else ''}",
            error_code=error_code,
        )
        self.error_description = error_description


class HTTPFailure(OAuth2Error):
    """Base for failures of a single round-trip to the identity provider.

    ``status_code`` is ``None`` when the request never got a response.
    """

    default_error_code = "http_failure"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.error_code = self._extract_error_code(body) or self.default_error_code

    @staticmethod
    def _extract_error_code(body: Any) -> str | None:
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return body["error"]
        return None


class TokenExchangeError(HTTPFailure):
    """Raised when the token endpoint does not return a usable token set.

    Retrying with the same authorization code will fail at the provider; the
    whole login has to be restarted.
    """

    default_error_code = "token_exchange_failed"

    _INVALID_GRANT_CODES = frozenset(
        {"invalid_grant", "unauthorized_client", "invalid_client"}
    )

    @property
    def is_invalid_grant(self) -> bool:
        """True when the grant itself was rejected, not the transport."""
        if self.error_code in self._INVALID_GRANT_CODES:
            return True
        return self.status_code in (401, 403)


class ProfileFetchError(HTTPFailure):
    """Raised when the userinfo endpoint does not return a profile."""

    default_error_code = "profile_fetch_failed"


class FlowStateError(OAuth2Error):
    """Raised when a controller operation is invoked in the wrong state."""

    error_code = "invalid_flow_state"


class SessionStoreError(OAuth2Error):
    """Raised when the refresh token store fails to read, write or delete."""

    error_code = "session_store_failed"
