from .session import AuthResult, AuthState, SessionRecord
from .user import UserRecord, UserStoreFile, normalize_email

__all__ = [
    "AuthResult",
    "AuthState",
    "SessionRecord",
    "UserRecord",
    "UserStoreFile",
    "normalize_email",
]
