"""Custom exceptions for the FinTrack authentication core"""

from typing import Optional


class FinTrackError(Exception):
    """Base exception for FinTrack"""

    code = "fintrack_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)


class ValidationError(FinTrackError):
    """Input failed validation; the caller should re-prompt"""

    code = "validation_error"


class DuplicateEmailError(FinTrackError):
    """An account with the same email (case-insensitive) already exists"""

    code = "duplicate_email"

    def __init__(self, message: str = "An account with this email already exists"):
        super().__init__(message)


class InvalidCredentialsError(FinTrackError):
    """Email/password pair did not match. Deliberately generic."""

    code = "invalid_credentials"

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class StorageError(FinTrackError):
    """Reading or writing the user file or the session store failed"""

    code = "storage_error"


class CryptoUnavailableError(FinTrackError):
    """Hash primitive or entropy source is unavailable. Fatal to the operation."""

    code = "crypto_unavailable"


class ConfigError(FinTrackError):
    """Configuration error"""

    code = "config_error"
