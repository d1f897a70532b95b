"""User record models for the local credential store"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(BaseModel):
    """One registered identity. Never carries the plaintext password."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    salt: str = Field(min_length=32, pattern="^[0-9a-f]+$")
    password_digest: str = Field(min_length=64, max_length=64)
    is_email_verified: bool = False
    role: Literal["user", "admin"] = "user"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_login: Optional[datetime] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    profile: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("phone")
    @classmethod
    def _strip_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class UserStoreFile(BaseModel):
    """The whole persisted document: {"users": [...]}"""

    users: List[UserRecord] = Field(default_factory=list)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        target = normalize_email(email)
        return next((u for u in self.users if u.email == target), None)

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        return next((u for u in self.users if u.id == user_id), None)


def normalize_email(email: str) -> str:
    """Trim and lower-case an email for storage and comparison"""
    return (email or "").strip().lower()
