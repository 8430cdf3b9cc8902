"""Identity provider configuration for the login flow.

A single immutable value supplied by the embedding application at startup
and passed explicitly into every operation that needs it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from pkceflow.models.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = "openid profile offline_access"
OFFLINE_ACCESS_SCOPE = "offline_access"


@dataclass(frozen=True)
class AuthorizationRequestConfig:
    """Tenant and client settings for authorization and token requests.

    ``redirect_uri`` must exactly match one of the allowed callback URLs
    registered for the client at the identity provider.
    """

    domain: str
    client_id: str
    redirect_uri: str
    audience: str | None = None
    scopes: str = DEFAULT_SCOPES

    def __post_init__(self) -> None:
        domain = self.domain.strip()
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix) :]
        domain = domain.rstrip("/")
        object.__setattr__(self, "domain", domain)

        if not self.domain:
            raise ValueError("domain must not be empty")
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.redirect_uri:
            raise ValueError("redirect_uri must not be empty")

        if OFFLINE_ACCESS_SCOPE not in self.scopes.split():
            logger.warning(
                f"Scopes '{self.scopes}' do not include {OFFLINE_ACCESS_SCOPE}; "
                "no refresh token will be issued"
            )

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    @property
    def authorize_endpoint(self) -> str:
        return f"{self.base_url}/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.base_url}/oauth/token"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self.base_url}/userinfo"

    @property
    def logout_endpoint(self) -> str:
        return f"{self.base_url}/v2/logout"

    @classmethod
    def from_env(cls, prefix: str = "AUTH0_") -> AuthorizationRequestConfig:
        """Build configuration from environment variables.

        Loads a ``.env`` file first if one is present. Reads ``DOMAIN``,
        ``CLIENT_ID``, ``REDIRECT_URI``, ``AUDIENCE`` and ``SCOPES``, each
        with the given prefix.

        Raises:
            ConfigurationError: If a required variable is missing
        """
        load_dotenv()

        def required(name: str) -> str:
            value = os.getenv(f"{prefix}{name}")
            if not value:
                raise ConfigurationError(
                    f"Missing required environment variable {prefix}{name}"
                )
            return value

        return cls(
            domain=required("DOMAIN"),
            client_id=required("CLIENT_ID"),
            redirect_uri=required("REDIRECT_URI"),
            audience=os.getenv(f"{prefix}AUDIENCE") or None,
            scopes=os.getenv(f"{prefix}SCOPES") or DEFAULT_SCOPES,
        )
