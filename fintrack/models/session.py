"""Session and auth-result models returned to the UI layer"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.exceptions import CryptoUnavailableError, FinTrackError
from .user import UserRecord, utcnow


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class SessionRecord(BaseModel):
    """Profile and token of the signed-in user. No password or salt material."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    email: str
    name: str
    role: Literal["user", "admin"] = "user"
    token: str
    issued_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def for_user(cls, user: UserRecord, token: str) -> "SessionRecord":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role, token=token)


class AuthResult(BaseModel):
    """
    Tagged outcome of an auth operation.

    Either success=True with a session (logout returns none), or
    success=False with a message and an error code.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    session: Optional[SessionRecord] = None
    message: Optional[str] = None
    error_code: Optional[str] = None
    fatal: bool = False

    @classmethod
    def ok(cls, session: Optional[SessionRecord] = None) -> "AuthResult":
        return cls(success=True, session=session)

    @classmethod
    def fail(cls, error: FinTrackError) -> "AuthResult":
        return cls(
            success=False,
            message=error.message,
            error_code=error.code,
            fatal=isinstance(error, CryptoUnavailableError),
        )
