"""
Salted password hashing and token minting.

digest = SHA-256(plaintext || salt), hex encoded. Salts come from the OS
CSPRNG. Verification compares digests in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from ..utils.exceptions import CryptoUnavailableError

SALT_BYTES = 16
TOKEN_BYTES = 32


def generate_salt(nbytes: int = SALT_BYTES) -> str:
    """Return `nbytes` of CSPRNG output as a lowercase hex string."""
    if nbytes < SALT_BYTES:
        raise ValueError(f"Salt must be at least {SALT_BYTES} bytes")
    try:
        return secrets.token_bytes(nbytes).hex()
    except (NotImplementedError, OSError) as e:
        raise CryptoUnavailableError("Secure random source is unavailable") from e


def hash_password(plaintext: str, salt: str) -> str:
    """Hash a password with its per-user salt"""
    try:
        h = hashlib.sha256()
    except ValueError as e:  # primitive disabled, e.g. by a FIPS policy
        raise CryptoUnavailableError("SHA-256 is unavailable") from e
    h.update(f"{plaintext}{salt}".encode("utf-8"))
    return h.hexdigest()


def verify_password(plaintext: str, salt: str, digest: str) -> bool:
    """Constant-time check of a password against a stored digest."""
    if not plaintext or not salt or not digest:
        return False
    candidate = hash_password(plaintext, salt)
    return hmac.compare_digest(candidate.encode("utf-8"), digest.encode("utf-8"))


def mint_session_token() -> str:
    """Create a new opaque session token"""
    try:
        return secrets.token_urlsafe(TOKEN_BYTES)
    except (NotImplementedError, OSError) as e:
        raise CryptoUnavailableError("Secure random source is unavailable") from e
