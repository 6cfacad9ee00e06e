"""
auth/session.py -- Session manager: the authentication lifecycle of the console.

State machine:
  UNKNOWN (loading) --bootstrap--> AUTHENTICATED | ANONYMOUS
  ANONYMOUS --login ok--> AUTHENTICATED
  any --logout / expire--> ANONYMOUS

Every transition returns an AuthResult describing what happened: the new
session snapshot, a notification to show, and the view to go to next. The
manager itself never prints, notifies or navigates; web/shell.py turns
results into effects. That keeps this module testable with a fake
AuthService and an in-memory TokenStore.

Concurrency:
  bootstrap / login / register / logout are serialized by one asyncio.Lock,
  so overlapping calls (a double-submitted login, a logout racing a login)
  settle one after the other instead of interleaving token writes.
  expire() is synchronous and lock-free: it runs from inside a gateway call
  that may itself be part of a locked transition.

Local validation runs before any network call and never touches the session.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from auth.models import AuthResult, Notification, Session, User, Variant
from auth.store import TokenStore
from core.config import get_settings
from core.models import LANDING_VIEW, LOGIN_VIEW, Envelope
from services.auth import AuthService

logger = logging.getLogger("crmconsole.session")

# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

FILL_ALL_FIELDS = "Please fill in all fields."
PASSWORDS_DO_NOT_MATCH = "Passwords do not match."
INVALID_CREDENTIALS = "Invalid email or password."
REGISTRATION_FAILED = "Could not create the account. Please try again later."


# ---------------------------------------------------------------------------
# Local validation
# ---------------------------------------------------------------------------


def _filled(*values: Optional[str]) -> bool:
    return all(value is not None and value.strip() for value in values)


def _given(*values: Optional[str]) -> bool:
    # Passwords are taken verbatim: whitespace counts as content.
    return all(value for value in values)


def validate_login(email: Optional[str], password: Optional[str]) -> Optional[str]:
    """Return an error message, or None when the login form may be submitted."""
    if not (_filled(email) and _given(password)):
        return FILL_ALL_FIELDS
    return None


def validate_registration(
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
) -> Optional[str]:
    """Return an error message, or None when the registration form may be submitted."""
    if not (_filled(name, email) and _given(password, confirm_password)):
        return FILL_ALL_FIELDS
    if password != confirm_password:
        return PASSWORDS_DO_NOT_MATCH
    return None


def _user_from(payload: Any) -> Optional[User]:
    try:
        return User.from_payload(payload)
    except ValueError:
        return None


def _backend_message(envelope: Envelope) -> Optional[str]:
    """The message the backend itself supplied for a rejected call, if any.

    A 401 carries the gateway's fixed session-expired text, not a backend
    message, so it never counts.
    """
    if envelope.session_expired or envelope.status_code is None:
        return None
    return envelope.message or None


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------


class SessionManager:
    """Owns the one Session of a running console.

    Usage:
        manager = SessionManager(api.auth, token_store)
        await manager.bootstrap()
        result = await manager.login("admin@example.com", "secret")
        if manager.is_authenticated:
            ...
    """

    def __init__(
        self,
        auth: AuthService,
        tokens: TokenStore,
        logout_notifies_backend: Optional[bool] = None,
    ) -> None:
        self._auth = auth
        self._tokens = tokens
        if logout_notifies_backend is None:
            logout_notifies_backend = get_settings().logout_notifies_backend
        self._logout_notifies_backend = logout_notifies_backend
        self._session = Session()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Guard predicate
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session.snapshot()

    @property
    def is_authenticated(self) -> bool:
        return self._session.authenticated

    @property
    def is_loading(self) -> bool:
        return self._session.loading

    @property
    def current_user(self) -> Optional[User]:
        return self._session.current_user

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def bootstrap(self) -> Session:
        """Settle the initial UNKNOWN state from the persisted token.

        No token: ANONYMOUS without a network call. A token the backend no
        longer accepts is cleared.
        """
        async with self._lock:
            token = self._tokens.get()
            if not token:
                self._session.destroy()
                logger.debug("No persisted session token; starting anonymous")
                return self._session.snapshot()

            envelope = await self._auth.me()
            user = _user_from(envelope.data) if envelope.success else None
            if user is None:
                self._tokens.clear()
                self._session.destroy()
                logger.info("Persisted session could not be restored (%s)", envelope.error or "invalid user payload")
            else:
                self._session.restore(token, user)
                logger.info("Session restored for %s", user.email)
            return self._session.snapshot()

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        error = validate_login(email, password)
        if error:
            return self._invalid(error)

        async with self._lock:
            envelope = await self._auth.login(email.strip(), password)
            data = envelope.data if envelope.success and isinstance(envelope.data, dict) else {}
            token = data.get("token")
            if not token:
                return self._login_failed(envelope)

            self._tokens.set(token)
            user = _user_from(data.get("user"))
            if user is None:
                # Some backends answer login with the token only.
                me = await self._auth.me()
                user = _user_from(me.data) if me.success else None
                if user is None:
                    self._tokens.clear()
                    return self._login_failed(me)

            self._session.create(token, user)
            logger.info("Signed in as %s", user.email)
            return AuthResult(
                ok=True,
                session=self._session.snapshot(),
                notification=Notification("Signed in", f"Welcome, {user.name or user.email}."),
                redirect=LANDING_VIEW,
            )

    async def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> AuthResult:
        """Create an account. Never signs the new user in."""
        error = validate_registration(name, email, password, confirm_password)
        if error:
            return self._invalid(error)

        async with self._lock:
            envelope = await self._auth.register(name.strip(), email.strip(), password)
            if not envelope.success:
                message = _backend_message(envelope) or REGISTRATION_FAILED
                logger.info("Registration rejected: %s", envelope.error)
                return AuthResult(
                    ok=False,
                    session=self._session.snapshot(),
                    notification=Notification("Registration failed", message, Variant.DESTRUCTIVE),
                    message=message,
                )
            return AuthResult(
                ok=True,
                session=self._session.snapshot(),
                notification=Notification("Account created", "Your account is ready. You can now sign in."),
                redirect=LOGIN_VIEW,
            )

    async def logout(self) -> AuthResult:
        """Tear the session down locally. Cannot fail."""
        async with self._lock:
            if self._logout_notifies_backend and self._tokens.get():
                # Best effort; the outcome does not change the local teardown.
                await self._auth.logout()
            self._tokens.clear()
            self._session.destroy()
            logger.info("Signed out")
            return AuthResult(
                ok=True,
                session=self._session.snapshot(),
                notification=Notification("Signed out", "You have been signed out."),
                redirect=LOGIN_VIEW,
            )

    def expire(self) -> Session:
        """Drop the session after the gateway reported a 401. Idempotent."""
        if self._session.authenticated:
            logger.info("Session expired for %s", self._session.current_user.email)
        self._tokens.clear()
        self._session.destroy()
        return self._session.snapshot()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _invalid(self, message: str) -> AuthResult:
        return AuthResult(
            ok=False,
            session=self._session.snapshot(),
            notification=Notification("Error", message, Variant.DESTRUCTIVE),
            message=message,
            validation_error=True,
        )

    def _login_failed(self, envelope: Envelope) -> AuthResult:
        if envelope.status_code is None and envelope.message and not envelope.success:
            # Timeout or unreachable backend: a credentials message would mislead.
            message = envelope.message
        else:
            message = _backend_message(envelope) or INVALID_CREDENTIALS
        logger.info("Login rejected: %s", envelope.error or "no token in response")
        return AuthResult(
            ok=False,
            session=self._session.snapshot(),
            notification=Notification("Sign-in failed", message, Variant.DESTRUCTIVE),
            message=message,
        )
