"""Tests for the encrypted session store"""

import os
import stat
import sys

import pytest
from cryptography.fernet import Fernet

from fintrack.models.session import SessionRecord
from fintrack.services.session_store import SessionStore, load_or_create_key
from fintrack.services import session_store as session_store_module
from fintrack.utils.exceptions import ConfigError, StorageError


def make_session(token="tok-123"):
    return SessionRecord(id="user-1", email="ana@example.com", name="Ana", token=token)


@pytest.mark.asyncio
async def test_save_then_load(session_store):
    session = make_session()
    await session_store.save(session)
    loaded = await session_store.load()
    assert loaded == session


@pytest.mark.asyncio
async def test_save_overwrites_previous_session(session_store):
    await session_store.save(make_session("first"))
    await session_store.save(make_session("second"))
    assert (await session_store.load()).token == "second"


@pytest.mark.asyncio
async def test_file_is_encrypted(session_store):
    await session_store.save(make_session("very-secret-token"))
    raw = session_store.session_path.read_bytes()
    assert b"very-secret-token" not in raw
    assert b"ana@example.com" not in raw


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
@pytest.mark.asyncio
async def test_file_is_owner_only(session_store):
    await session_store.save(make_session())
    mode = stat.S_IMODE(os.stat(session_store.session_path).st_mode)
    assert mode == 0o600


@pytest.mark.asyncio
async def test_load_missing_returns_none(session_store):
    assert await session_store.load() is None


@pytest.mark.asyncio
async def test_load_with_other_key_returns_none(session_store, data_dir):
    await session_store.save(make_session())
    other = SessionStore(session_store.session_path, Fernet.generate_key())
    assert await other.load() is None


@pytest.mark.asyncio
async def test_load_garbage_returns_none(session_store):
    session_store.session_path.write_bytes(b"garbage")
    assert await session_store.load() is None


@pytest.mark.asyncio
async def test_clear_is_idempotent(session_store):
    await session_store.save(make_session())
    await session_store.clear()
    assert not session_store.session_path.exists()
    await session_store.clear()
    assert await session_store.load() is None


@pytest.mark.asyncio
async def test_clear_failure_raises_storage_error(session_store, monkeypatch):
    await session_store.save(make_session())

    def _locked(self, missing_ok=False):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(session_store_module.Path, "unlink", _locked)
    with pytest.raises(StorageError):
        await session_store.clear()


def test_invalid_key_is_config_error(data_dir):
    with pytest.raises(ConfigError):
        SessionStore(data_dir / "session.bin", "not-a-fernet-key")


def test_session_record_rejects_secret_fields():
    with pytest.raises(ValueError):
        SessionRecord(
            id="u", email="a@b.co", name="A", token="t", password_digest="x" * 64
        )


def test_load_or_create_key_is_stable(data_dir):
    key_path = data_dir / "session.key"
    first = load_or_create_key(key_path)
    second = load_or_create_key(key_path)
    assert first == second
    Fernet(first)
