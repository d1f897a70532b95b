"""
Authentication core: registration, login, logout and session restore.

AuthService owns the in-memory session state of the app. The UI layer
calls its coroutines and renders the returned AuthResult; nothing raises
past this boundary. State changes are pushed to subscribers.
"""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, List, Optional

from ..models.session import AuthResult, AuthState, SessionRecord
from ..models.user import UserRecord, normalize_email, utcnow
from ..services.session_store import SessionStore
from ..services.user_store import UserStore
from ..utils.exceptions import (
    DuplicateEmailError,
    FinTrackError,
    InvalidCredentialsError,
    ValidationError,
)
from ..utils.logger import get_logger
from .passwords import generate_salt, hash_password, mint_session_token, verify_password

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

Listener = Callable[[AuthState, Optional[SessionRecord]], None]


class AuthService:
    """Orchestrates the user store, password hashing and the session store"""

    def __init__(
        self,
        user_store: UserStore,
        session_store: SessionStore,
        min_password_length: int = MIN_PASSWORD_LENGTH,
    ):
        self.user_store = user_store
        self.session_store = session_store
        self.min_password_length = min_password_length

        self._state = AuthState.ANONYMOUS
        self._session: Optional[SessionRecord] = None
        self._listeners: List[Listener] = []
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_session(self) -> Optional[SessionRecord]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._state == AuthState.AUTHENTICATED

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for state changes; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, state: AuthState, session: Optional[SessionRecord]) -> None:
        self._state = state
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(state, session)
            except Exception as e:
                logger.error("Auth state listener failed", error=str(e))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def register(
        self, name: str, email: str, password: str, phone: Optional[str] = None
    ) -> AuthResult:
        """Create an account and sign it in"""

        async def _register() -> SessionRecord:
            clean_name, clean_email = self._validate_registration(name, email, password)

            if await self.user_store.find_by_email(clean_email) is not None:
                raise DuplicateEmailError()

            salt = await asyncio.to_thread(generate_salt)
            now = utcnow()
            user = UserRecord(
                name=clean_name,
                email=clean_email,
                phone=phone,
                salt=salt,
                password_digest=await asyncio.to_thread(hash_password, password, salt),
                created_at=now,
                updated_at=now,
                last_login=None,
            )
            # The store checks uniqueness again inside its critical section
            await self.user_store.insert(user)

            session = SessionRecord.for_user(user, await asyncio.to_thread(mint_session_token))
            await self.session_store.save(session)
            logger.info("User registered", user_id=user.id)
            return session

        return await self._authenticate("register", _register)

    async def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and start a new session"""

        async def _login() -> SessionRecord:
            if not (email or "").strip() or not password:
                raise ValidationError("Email and password are required")

            user = await self.user_store.find_by_email(email)
            if user is None:
                raise InvalidCredentialsError()

            matches = await asyncio.to_thread(
                verify_password, password, user.salt, user.password_digest
            )
            if not matches:
                raise InvalidCredentialsError()

            user = await self.user_store.update(user.id, last_login=utcnow())
            session = SessionRecord.for_user(user, await asyncio.to_thread(mint_session_token))
            await self.session_store.save(session)
            logger.info("User logged in", user_id=user.id)
            return session

        return await self._authenticate("login", _login)

    async def logout(self) -> AuthResult:
        """Forget the current session. Idempotent."""
        async with self._lock:
            previous = self._session
            self._set_state(AuthState.ANONYMOUS, None)
            try:
                await self.session_store.clear()
            except FinTrackError as e:
                logger.error("Logout could not clear session store", error=e.message)
                return AuthResult.fail(e)
            except Exception as e:
                return self._unexpected("logout", e)

            if previous is not None:
                logger.info("User logged out", user_id=previous.id)
            return AuthResult.ok()

    async def restore_session(self) -> AuthResult:
        """Resume a saved session at process start, without re-checking credentials."""
        async with self._lock:
            try:
                session = await self.session_store.load()
            except Exception as e:
                logger.warning("Session restore failed", error=str(e))
                session = None

            if session is None:
                self._set_state(AuthState.ANONYMOUS, None)
                return _no_session()

            self._set_state(AuthState.AUTHENTICATED, session)
            logger.info("Session restored", user_id=session.id)
            return AuthResult.ok(session)

    async def get_current_session(self) -> AuthResult:
        if self._session is None:
            return _no_session()
        return AuthResult.ok(self._session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _authenticate(
        self, action: str, flow: Callable[[], Awaitable[SessionRecord]]
    ) -> AuthResult:
        """Run a sign-in flow with state transitions and error conversion."""
        async with self._lock:
            previous_state, previous_session = self._state, self._session
            self._set_state(AuthState.AUTHENTICATING, previous_session)
            try:
                session = await flow()
            except FinTrackError as e:
                logger.warning("Auth operation failed", action=action, error_code=e.code)
                self._restore(previous_state, previous_session)
                return AuthResult.fail(e)
            except Exception as e:
                self._restore(previous_state, previous_session)
                return self._unexpected(action, e)

            self._set_state(AuthState.AUTHENTICATED, session)
            return AuthResult.ok(session)

    def _restore(self, state: AuthState, session: Optional[SessionRecord]) -> None:
        if state == AuthState.AUTHENTICATED and session is not None:
            self._set_state(state, session)
        else:
            self._set_state(AuthState.ANONYMOUS, None)

    def _unexpected(self, action: str, error: Exception) -> AuthResult:
        logger.exception("Unexpected auth error", action=action, error=str(error))
        return AuthResult(
            success=False,
            message=f"Failed to {action}",
            error_code="internal_error",
        )

    def _validate_registration(self, name: str, email: str, password: str):
        clean_name = (name or "").strip()
        clean_email = normalize_email(email)
        if not clean_name or not clean_email or not password:
            raise ValidationError("Name, email, and password are required")
        if not EMAIL_PATTERN.match(clean_email):
            raise ValidationError("Please enter a valid email address")
        if len(password) < self.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        return clean_name, clean_email


def _no_session() -> AuthResult:
    return AuthResult(success=False, message="No active session", error_code="no_session")
