"""
Encrypted persistence of the current session.

The session (profile + token) is kept apart from the user store, in a
Fernet-encrypted file (AES + HMAC via the cryptography library) readable
only by the owner. An unreadable or tampered file counts as "not logged
in", never as a hard failure.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError as PydanticValidationError

from ..models.session import SessionRecord
from ..utils.exceptions import ConfigError, CryptoUnavailableError, StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

PRIVATE_FILE_MODE = 0o600


def load_or_create_key(key_path: Path) -> bytes:
    """Read the Fernet key from disk, generating it on first use."""
    key_path = Path(key_path)
    if key_path.exists():
        try:
            return key_path.read_bytes().strip()
        except OSError as e:
            raise StorageError(f"Failed to read session key {key_path}: {e}") from e

    try:
        key = Fernet.generate_key()
    except (NotImplementedError, OSError) as e:
        raise CryptoUnavailableError("Secure random source is unavailable") from e
    _write_private(key_path, key)
    logger.info("Generated new session key", path=str(key_path))
    return key


def _write_private(path: Path, blob: bytes) -> None:
    """Atomically write bytes to a file only the owner can read."""
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(tmp_path), os.O_CREAT | os.O_TRUNC | os.O_WRONLY, PRIVATE_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(blob)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise StorageError(f"Failed to write {path}: {e}") from e


class SessionStore:
    """Secure key-value storage for the single active session"""

    def __init__(self, session_path: Path, key: Union[str, bytes]):
        self.session_path = Path(session_path)
        if isinstance(key, str):
            key = key.encode("utf-8")
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise ConfigError("Session key must be a urlsafe base64 32-byte Fernet key") from e
        self._lock = asyncio.Lock()

    async def save(self, session: SessionRecord) -> None:
        """Persist the session, replacing any previous one"""
        async with self._lock:
            await asyncio.to_thread(self._save_sync, session)

    async def load(self) -> Optional[SessionRecord]:
        """Return the saved session, or None if missing or unreadable"""
        async with self._lock:
            return await asyncio.to_thread(self._load_sync)

    async def clear(self) -> None:
        """Remove the saved session. Safe to call when none exists."""
        async with self._lock:
            await asyncio.to_thread(self._clear_sync)

    def _save_sync(self, session: SessionRecord) -> None:
        plain = json.dumps(session.model_dump(mode="json")).encode("utf-8")
        _write_private(self.session_path, self._fernet.encrypt(plain))

    def _load_sync(self) -> Optional[SessionRecord]:
        if not self.session_path.exists():
            return None
        try:
            blob = self.session_path.read_bytes()
            plain = self._fernet.decrypt(blob)
            return SessionRecord(**json.loads(plain))
        except InvalidToken:
            logger.warning("Session file could not be decrypted", path=str(self.session_path))
        except (OSError, ValueError, TypeError, PydanticValidationError) as e:
            logger.warning("Session file unreadable", path=str(self.session_path), error=str(e))
        return None

    def _clear_sync(self) -> None:
        try:
            self.session_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to clear session at {self.session_path}: {e}") from e
