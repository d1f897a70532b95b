"""
User storage service with JSON-based persistence.

The whole store lives in one document, {"users": [...]}, which is read in
full, changed in memory and written back in full on every mutation.

Every public operation goes through one asyncio.Lock per store, so only a
single read-modify-write cycle is in flight at a time. There is no file
locking: one process owns the file. Two processes writing the same file
can still lose updates.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..models.user import UserRecord, UserStoreFile, normalize_email, utcnow
from ..utils.exceptions import DuplicateEmailError, StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

IMMUTABLE_FIELDS = {"id", "salt", "created_at"}


class UserStore:
    """File-backed user registry with serialized access"""

    def __init__(self, users_path: Path):
        self.users_path = Path(users_path)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public async API
    # ------------------------------------------------------------------

    async def read(self) -> UserStoreFile:
        """Load the store, creating an empty one on first access"""
        return await self._serialized(self._read_sync)

    async def write(self, data: UserStoreFile) -> None:
        """Overwrite the whole store"""
        await self._serialized(self._write_sync, data)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        data = await self.read()
        return data.find_by_email(email)

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        data = await self.read()
        return data.find_by_id(user_id)

    async def count(self) -> int:
        data = await self.read()
        return len(data.users)

    async def insert(self, user: UserRecord) -> UserRecord:
        """Append a new user; rejects a case-insensitive email collision."""
        return await self._serialized(self._insert_sync, user)

    async def update(self, user_id: str, **changes: Any) -> UserRecord:
        """Change fields of one user and refresh updated_at"""
        return await self._serialized(self._update_sync, user_id, changes)

    async def _serialized(self, func: Callable[..., T], *args: Any) -> T:
        async def _critical() -> T:
            async with self._lock:
                return await asyncio.to_thread(func, *args)

        # A caller giving up on the result must not cut a write in half.
        return await asyncio.shield(asyncio.ensure_future(_critical()))

    # ------------------------------------------------------------------
    # Blocking helpers (run in a worker thread while the lock is held)
    # ------------------------------------------------------------------

    def _read_sync(self) -> UserStoreFile:
        if not self.users_path.exists():
            logger.info("Creating empty user store", path=str(self.users_path))
            self._write_sync(UserStoreFile())
            return UserStoreFile()

        try:
            with open(self.users_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"User store {self.users_path} is not valid JSON: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read users from {self.users_path}: {e}") from e

        if not isinstance(raw, dict):
            raise StorageError(f"User store {self.users_path} has an unexpected layout")
        try:
            return UserStoreFile(users=raw.get("users") or [])
        except PydanticValidationError as e:
            raise StorageError(f"User store {self.users_path} has invalid records: {e}") from e

    def _write_sync(self, data: UserStoreFile) -> None:
        payload: Dict[str, Any] = data.model_dump(mode="json")
        self._atomic_write(self.users_path, payload)

    def _insert_sync(self, user: UserRecord) -> UserRecord:
        data = self._read_sync()
        if data.find_by_email(user.email) is not None:
            raise DuplicateEmailError()
        if data.find_by_id(user.id) is not None:
            raise StorageError(f"User with ID '{user.id}' already exists")

        data.users.append(user)
        self._write_sync(data)
        logger.info("User created", user_id=user.id, total_users=len(data.users))
        return user

    def _update_sync(self, user_id: str, changes: Dict[str, Any]) -> UserRecord:
        locked = IMMUTABLE_FIELDS.intersection(changes)
        if locked:
            raise StorageError(f"Fields cannot be changed: {', '.join(sorted(locked))}")

        data = self._read_sync()
        for i, user in enumerate(data.users):
            if user.id != user_id:
                continue

            if "email" in changes:
                new_email = normalize_email(changes["email"])
                if any(u.email == new_email and u.id != user_id for u in data.users):
                    raise DuplicateEmailError()

            user_dict = user.model_dump()
            user_dict.update(changes)
            user_dict["updated_at"] = utcnow()
            try:
                updated_user = UserRecord(**user_dict)
            except PydanticValidationError as e:
                raise StorageError(f"Invalid update for user '{user_id}': {e}") from e

            data.users[i] = updated_user
            self._write_sync(data)
            return updated_user

        raise StorageError(f"User with ID '{user_id}' not found")

    def _atomic_write(self, path: Path, payload: Dict[str, Any]) -> None:
        """Write JSON via a temp file in the same directory, then replace."""
        temp_path: Optional[Path] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", dir=str(path.parent), delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                temp_path = Path(tf.name)
                json.dump(payload, tf, indent=2, ensure_ascii=False)
                tf.flush()
                os.fsync(tf.fileno())
            shutil.move(str(temp_path), str(path))
        except OSError as e:
            # Clean up temp file; the previous store is left untouched
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to save users to {path}: {e}") from e
