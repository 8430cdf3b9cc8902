"""Session and user profile models.

``Session`` is the externally observable result of the login controller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from pkceflow.models.errors import OAuth2Error


class FlowState(str, Enum):
    """Controller states for one login/logout cycle."""

    IDLE = "idle"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class UserProfile(BaseModel):
    """Profile returned by the userinfo endpoint. Not cached."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    nickname: str | None = None
    picture_url: str | None = Field(default=None, alias="picture")
    sub: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class Authenticated:
    user_profile: UserProfile
    access_token: str = field(repr=False)

    @property
    def is_authenticated(self) -> bool:
        return True


@dataclass(frozen=True)
class Unauthenticated:
    """No usable session. ``error`` is ``None`` when nothing went wrong."""

    error: OAuth2Error | None = None

    @property
    def is_authenticated(self) -> bool:
        return False

    @property
    def error_code(self) -> str | None:
        return self.error.error_code if self.error else None


@dataclass(frozen=True)
class Pending:
    """A login attempt is waiting for its redirect or token exchange."""

    @property
    def is_authenticated(self) -> bool:
        return False


Session = Union[Authenticated, Unauthenticated, Pending]
