"""
api/routes/v1/auth.py -- Authentication endpoints of the demo backend.

Routes:
  POST /v1/auth/login            -- email/password login; data = {user, token}
  POST /v1/auth/register         -- create an account; data = {user, token}
  GET  /v1/auth/me               -- current user (requires auth)
  POST /v1/auth/logout           -- revoke the presented token; 204
  POST /v1/auth/refresh-token    -- swap the presented token for a fresh one (requires auth)
  POST /v1/auth/forgot-password  -- issue a reset token; always 200
  POST /v1/auth/reset-password   -- set a new password with a reset token

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  authenticate_user() equalizes timing; never inline the password check.
  Login and register responses carry Cache-Control: no-store.
  forgot-password answers the same way for known and unknown emails.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.dependencies import bearer_claims, get_current_user
from api.limiter import limiter
from api.models import (
    AuthPayload,
    ForgotPasswordData,
    LoginData,
    RegisterData,
    ResetPasswordData,
    TokenPayload,
    UserOut,
    data_response,
)
from api.store import DemoStore
from api.tokens import authenticate_user, create_access_token
from core.config import get_settings

logger = logging.getLogger("crmconsole.api.auth")

# Auth policy:
# - login, register, forgot-password, reset-password: public
# - logout: public; revokes the bearer token when one is presented
# - me, refresh-token: requires auth (get_current_user)
router = APIRouter()

_RESET_SENT = "If an account exists for that email, a reset link has been sent."


def _issue(user: UserOut) -> str:
    return create_access_token(user.id, user.email, user.role)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(get_settings().login_rate_limit)  # must sit ABOVE @router to keep FastAPI introspection
@router.post("/auth/login")
def login(request: Request, response: Response, body: LoginData) -> dict:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 body.
    """
    store: DemoStore = request.app.state.store
    response.headers["Cache-Control"] = "no-store"
    user = authenticate_user(store, body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "bad_credentials", "message": "Invalid email or password."},
        )
    logger.info("Login for user %s", user.id)
    return data_response(AuthPayload(user=user, token=_issue(user)), "Login successful")


@router.post("/auth/register", status_code=201)
def register(request: Request, response: Response, body: RegisterData) -> dict:
    if not get_settings().self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    store: DemoStore = request.app.state.store
    response.headers["Cache-Control"] = "no-store"
    try:
        user = store.create_user(body.name, body.email, body.password)
    except ValueError:
        raise HTTPException(
            status_code=409,
            detail={"code": "email_taken", "message": "An account with this email already exists."},
        ) from None
    return data_response(AuthPayload(user=user, token=_issue(user)), "Account created")


@router.post("/auth/logout", status_code=204)
def logout(request: Request) -> Response:
    """Revoke the presented token. Succeeds with or without one."""
    claims = bearer_claims(request)
    if claims is not None:
        store: DemoStore = request.app.state.store
        store.revoke(claims["jti"])
    return Response(status_code=204)


@router.post("/auth/forgot-password")
def forgot_password(request: Request, body: ForgotPasswordData) -> dict:
    store: DemoStore = request.app.state.store
    if store.issue_reset_token(body.email) is not None:
        logger.info("Password reset token issued")
    return {"data": None, "message": _RESET_SENT}


@router.post("/auth/reset-password")
def reset_password(request: Request, body: ResetPasswordData) -> dict:
    store: DemoStore = request.app.state.store
    user_id = store.consume_reset_token(body.token)
    if user_id is None or store.get_user(user_id) is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_token", "message": "The reset link is invalid or has expired."},
        )
    store.set_password(user_id, body.password)
    logger.info("Password reset for user %s", user_id)
    return {"data": None, "message": "Password updated. You can now sign in."}


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me")
def me(current_user: UserOut = Depends(get_current_user)) -> dict:
    return data_response(current_user)


@router.post("/auth/refresh-token")
def refresh_token(request: Request, current_user: UserOut = Depends(get_current_user)) -> dict:
    """Issue a new token and revoke the one used for this call."""
    claims = bearer_claims(request)
    store: DemoStore = request.app.state.store
    if claims is not None:
        store.revoke(claims["jti"])
    return data_response(TokenPayload(token=_issue(current_user)))
