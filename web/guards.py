"""
web/guards.py -- Route guards: who may see which view.

Two kinds of route exist:
  PROTECTED -- requires an authenticated session, else redirect to /login
  PUBLIC    -- login/register; an authenticated session is sent to /

While the session is still being bootstrapped (loading) both kinds answer
LOADING so the caller can show an indeterminate progress state instead of
redirecting on a half-known session.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from auth.models import Session
from core.models import LANDING_VIEW, LOGIN_VIEW


class RouteKind(str, Enum):
    PROTECTED = "protected"
    PUBLIC = "public"


class Outcome(str, Enum):
    RENDER = "render"
    LOADING = "loading"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    outcome: Outcome
    target: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.RENDER


def guard(kind: RouteKind, session: Session) -> GuardDecision:
    if session.loading:
        return GuardDecision(Outcome.LOADING)
    if kind is RouteKind.PROTECTED and not session.authenticated:
        return GuardDecision(Outcome.REDIRECT, LOGIN_VIEW)
    if kind is RouteKind.PUBLIC and session.authenticated:
        return GuardDecision(Outcome.REDIRECT, LANDING_VIEW)
    return GuardDecision(Outcome.RENDER)


def protected_route(session: Session) -> GuardDecision:
    return guard(RouteKind.PROTECTED, session)


def public_route(session: Session) -> GuardDecision:
    return guard(RouteKind.PUBLIC, session)
