"""Token request and response models.

Requests are immutable and form-encoded; responses are decoded from the
token endpoint's JSON body.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


class TokenSet(BaseModel):
    """Tokens returned by a successful token endpoint call.

    ``refresh_token`` is only present when ``offline_access`` was granted, and
    may be absent on a refresh grant when the provider does not rotate it.
    Access tokens are never persisted by this package.
    """

    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    scope: str | None = None

    def __repr__(self) -> str:
        return (
            f"TokenSet(token_type={self.token_type!r}, "
            f"expires_in={self.expires_in!r}, "
            f"has_refresh_token={self.refresh_token is not None})"
        )


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange request (RFC 6749 Section 4.1.3)."""

    # Required fields first
    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str  # RFC 7636 PKCE

    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).

        Returns:
            Dictionary suitable for httpx data parameter
        """
        return {
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "code_verifier": self.code_verifier,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
        }


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str
    client_id: str

    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request."""
        return {
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "refresh_token": self.refresh_token,
        }
