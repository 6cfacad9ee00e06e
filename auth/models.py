"""
auth/models.py -- Domain dataclasses for the client-side session.

Pattern: Data class. Session is the one piece of mutable state here and owns
its own lifecycle (create / restore / destroy) so its invariant
(authenticated implies token) is enforced in one place. Everything the
session manager hands back to callers is a snapshot copy.

Layer rule: no imports from api/, web/, or services/. Imports from core/ are allowed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional


class SessionState(str, Enum):
    UNKNOWN = "unknown"  # bootstrap not finished, loading=True
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class Variant(str, Enum):
    NORMAL = "normal"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class User:
    """The signed-in identity as reported by the backend."""

    id: str
    name: str
    email: str
    role: str
    avatar: Optional[str] = None
    created_at: Optional[str] = None
    status: Optional[str] = None  # "active", "inactive", "suspended"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "User":
        """Build a User from a camelCase JSON object. Raises ValueError if id or email is missing."""
        if not isinstance(payload, dict) or not payload.get("id") or not payload.get("email"):
            raise ValueError("User payload must contain id and email")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            email=str(payload["email"]),
            role=str(payload.get("role") or "user"),
            avatar=payload.get("avatar"),
            created_at=payload.get("createdAt"),
            status=payload.get("status"),
        )


@dataclass
class Session:
    """Process-wide authentication state. One per running console.

    Starts in the UNKNOWN state (loading=True) until bootstrap settles it.
    """

    token: Optional[str] = None
    current_user: Optional[User] = None
    authenticated: bool = False
    loading: bool = True

    @property
    def state(self) -> SessionState:
        if self.loading:
            return SessionState.UNKNOWN
        return SessionState.AUTHENTICATED if self.authenticated else SessionState.ANONYMOUS

    def create(self, token: str, user: User) -> None:
        """Enter AUTHENTICATED after a successful login."""
        if not token:
            raise ValueError("An authenticated session requires a token")
        self.token = token
        self.current_user = user
        self.authenticated = True
        self.loading = False

    def restore(self, token: str, user: User) -> None:
        """Enter AUTHENTICATED from a persisted token confirmed by the backend."""
        self.create(token, user)

    def destroy(self) -> None:
        """Enter ANONYMOUS. Always succeeds."""
        self.token = None
        self.current_user = None
        self.authenticated = False
        self.loading = False

    def snapshot(self) -> "Session":
        return replace(self)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: Variant = Variant.NORMAL


@dataclass(frozen=True)
class AuthResult:
    """Outcome of one session transition.

    The session manager never talks to the UI. It returns what happened and
    the application shell decides how to show it (notification) and where to
    go next (redirect).
    """

    ok: bool
    session: Session
    notification: Optional[Notification] = None
    redirect: Optional[str] = None
    message: Optional[str] = None
    validation_error: bool = False
