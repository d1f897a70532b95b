import pytest
from cryptography.fernet import Fernet

from fintrack.auth.service import AuthService
from fintrack.services.session_store import SessionStore
from fintrack.services.user_store import UserStore


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def session_key():
    return Fernet.generate_key()


@pytest.fixture
def user_store(data_dir):
    return UserStore(data_dir / "db.json")


@pytest.fixture
def session_store(data_dir, session_key):
    return SessionStore(data_dir / "session.bin", session_key)


@pytest.fixture
def auth_service(user_store, session_store):
    return AuthService(user_store, session_store)
