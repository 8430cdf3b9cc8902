"""PKCE (Proof Key for Code Exchange) primitives.

Implements RFC 7636 code verifier and S256 code challenge generation to
prevent authorization code interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from pkceflow.models.errors import CryptoUnavailableError
from pkceflow.models.security import PKCEParameters

VERIFIER_BYTES = 32
# Must stay in lockstep with the hash used by derive_challenge.
CODE_CHALLENGE_METHOD = "S256"


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_verifier() -> str:
    """Generate a cryptographically secure code verifier.

    Draws 32 bytes from the OS CSPRNG and encodes them as unpadded
    base64url, giving a 43-character verifier within RFC 7636 Section 4.1
    bounds.

    Raises:
        CryptoUnavailableError: If the secure random source is unavailable
    """
    try:
        random_bytes = secrets.token_bytes(VERIFIER_BYTES)
    except (NotImplementedError, OSError) as e:
        raise CryptoUnavailableError(
            f"Secure random source unavailable: {e}"
        ) from e

    return _base64url(random_bytes)


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(verifier)), unpadded.
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _base64url(digest)


class PKCEManager:
    """Generates a fresh verifier/challenge pair per authorization attempt."""

    def generate_parameters(self) -> PKCEParameters:
        """Generate new PKCE parameters for an authorization flow.

        Returns:
            PKCEParameters: Immutable parameters for the authorization flow

        Raises:
            CryptoUnavailableError: If the secure random source is unavailable
        """
        code_verifier = generate_verifier()

        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=derive_challenge(code_verifier),
            code_challenge_method=CODE_CHALLENGE_METHOD,
        )
