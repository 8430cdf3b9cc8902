"""Authorization and logout URL construction.

Pure construction: no network or UI side effects. Opening the resulting
URLs in an external user agent is the caller's job.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from pkceflow.models.config import AuthorizationRequestConfig
from pkceflow.models.flow import AuthorizationRequest, LogoutRequest
from pkceflow.primitives.pkce import PKCEManager

logger = logging.getLogger(__name__)


class AuthorizationStart(NamedTuple):
    """Authorization URL plus the verifier that must be kept for the exchange.

    Losing the verifier invalidates the in-flight login attempt.
    """

    url: str
    verifier: str


class AuthorizationUrlBuilder:
    """Builds authorization URLs backed by a freshly generated PKCE pair."""

    def __init__(self, pkce_manager: PKCEManager | None = None):
        self._pkce_manager = pkce_manager or PKCEManager()

    def build(self, config: AuthorizationRequestConfig) -> AuthorizationStart:
        """Build the authorization URL for a new login attempt.

        Args:
            config: Identity provider configuration

        Returns:
            AuthorizationStart: URL to open and the verifier to retain

        Raises:
            CryptoUnavailableError: If no verifier can be generated
        """
        pkce_params = self._pkce_manager.generate_parameters()

        auth_request = AuthorizationRequest(
            authorization_endpoint=config.authorize_endpoint,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            code_challenge=pkce_params.code_challenge,
            code_challenge_method=pkce_params.code_challenge_method,
            scope=config.scopes,
            audience=config.audience,
        )

        logger.debug(
            f"Built authorization URL for client {config.client_id} "
            f"at {config.authorize_endpoint}"
        )

        return AuthorizationStart(
            url=auth_request.build_authorization_url(),
            verifier=pkce_params.code_verifier,
        )

    def build_logout_url(
        self, config: AuthorizationRequestConfig, return_to: str | None = None
    ) -> str:
        """Build the provider logout URL.

        The caller opens it the same way as the authorization URL and calls
        the controller's ``logout()`` once the logout redirect comes back.

        Args:
            config: Identity provider configuration
            return_to: Where the provider redirects after logout. Defaults to
                the configured redirect URI.
        """
        logout_request = LogoutRequest(
            logout_endpoint=config.logout_endpoint,
            client_id=config.client_id,
            return_to=return_to or config.redirect_uri,
        )
        return logout_request.build_logout_url()
