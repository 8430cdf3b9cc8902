"""Authorization flow models.

Contains models for authorization and logout requests and for the outcome
of an identity provider redirect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from urllib.parse import urlencode


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the code flow with PKCE."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    scope: str
    code_challenge_method: str = "S256"
    audience: str | None = None

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {"scope": self.scope}
        if self.audience:
            params["audience"] = self.audience
        params.update(
            {
                "response_type": "code",
                "client_id": self.client_id,
                "code_challenge": self.code_challenge,
                "code_challenge_method": self.code_challenge_method,
                "redirect_uri": self.redirect_uri,
            }
        )

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class LogoutRequest:
    logout_endpoint: str
    client_id: str
    return_to: str

    def build_logout_url(self) -> str:
        params = {"client_id": self.client_id, "returnTo": self.return_to}
        return f"{self.logout_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class CallbackSuccess:
    """Redirect carried an authorization code."""

    authorization_code: str
    state: str | None = None

    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class CallbackFailure:
    """Redirect carried an error, or nothing usable at all."""

    error_code: str
    error_description: str | None = None
    state: str | None = None
    # Set when the redirect itself was unusable, not when the provider erred
    is_malformed: bool = False

    def is_success(self) -> bool:
        return False


CallbackOutcome = Union[CallbackSuccess, CallbackFailure]
