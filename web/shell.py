"""
web/shell.py -- Application shell: turns session results into user-visible effects.

The session manager and the request gateway are UI-free. This module is the
one place where their outcomes become notifications and navigation:

  - AppShell.apply(result) shows result.notification and follows
    result.redirect
  - a 401 seen anywhere by the gateway tears the session down and sends the
    user to /login, unless the user is already there
  - enforce(kind) applies a route guard to the current view

Notifier and Navigator are protocols; the CLI in main.py supplies terminal
implementations, tests supply recording fakes.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from auth.models import AuthResult, Notification, Session
from auth.session import SessionManager
from core.gateway import RequestGateway
from core.models import LOGIN_VIEW, Envelope
from web.guards import GuardDecision, Outcome, RouteKind, guard

logger = logging.getLogger("crmconsole.shell")


class Notifier(Protocol):
    """Fire-and-forget user notification (a toast in a browser, a line in a terminal)."""

    def notify(self, notification: Notification) -> None: ...


class Navigator(Protocol):
    current_view: str

    def navigate(self, view: str) -> None: ...


class AppShell:
    """Coordinator between the session core and the UI collaborators.

    Usage:
        shell = AppShell(manager, gateway, notifier, navigator)
        await shell.start()
        await shell.login(email, password)
        ...
        shell.close()
    """

    def __init__(
        self,
        sessions: SessionManager,
        gateway: RequestGateway,
        notifier: Notifier,
        navigator: Navigator,
    ) -> None:
        self.sessions = sessions
        self.notifier = notifier
        self.navigator = navigator
        self._unsubscribe = gateway.on_session_expired(self._on_session_expired)

    async def start(self) -> Session:
        return await self.sessions.bootstrap()

    def apply(self, result: AuthResult) -> AuthResult:
        if result.notification is not None:
            self.notifier.notify(result.notification)
        self._go(result.redirect)
        return result

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        return self.apply(await self.sessions.login(email, password))

    async def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> AuthResult:
        return self.apply(await self.sessions.register(name, email, password, confirm_password))

    async def logout(self) -> AuthResult:
        return self.apply(await self.sessions.logout())

    def enforce(self, kind: RouteKind) -> GuardDecision:
        decision = guard(kind, self.sessions.session)
        if decision.outcome is Outcome.REDIRECT:
            self._go(decision.target)
        return decision

    def close(self) -> None:
        self._unsubscribe()

    def _go(self, view: Optional[str]) -> None:
        if view is None or view == self.navigator.current_view:
            return
        self.navigator.navigate(view)

    def _on_session_expired(self, envelope: Envelope) -> None:
        self.sessions.expire()
        logger.info("Session expired; current view %s", self.navigator.current_view)
        self._go(LOGIN_VIEW)
