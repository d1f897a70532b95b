"""
Authentication core.

Provides:
- Salted SHA-256 password hashing with constant-time verification
- Opaque session tokens
- AuthService: register / login / logout / restore
"""

from .passwords import generate_salt, hash_password, mint_session_token, verify_password
from .service import AuthService

__all__ = [
    "AuthService",
    "generate_salt",
    "hash_password",
    "mint_session_token",
    "verify_password",
]
