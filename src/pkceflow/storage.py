"""Refresh token persistence contract.

Implementations wrap whatever secure key-value storage the embedding
platform provides. Only the refresh token is ever stored.
"""

from __future__ import annotations

from typing import Protocol


class SessionStore(Protocol):
    """Secure storage for a single refresh token."""

    async def get(self) -> str | None:
        """Return the stored refresh token, or ``None`` if there is none."""
        ...

    async def set(self, refresh_token: str) -> None:
        """Store ``refresh_token``, replacing any previous value."""
        ...

    async def delete(self) -> None:
        """Remove the stored refresh token. No-op when nothing is stored."""
        ...
