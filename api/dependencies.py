"""
api/dependencies.py -- FastAPI Depends() helpers for demo backend authentication.

Only the Authorization: Bearer <token> header is accepted; that is how the
request gateway authenticates every call.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
require_admin() wraps get_current_user() and raises HTTP 403 if not admin.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from api.models import RoleEnum, UserOut, UserStatusEnum
from api.store import DemoStore
from api.tokens import decode_access_token


def bearer_claims(request: Request) -> dict | None:
    """Return the verified, unrevoked JWT claims of the request, or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    payload = decode_access_token(auth_header[7:])
    if payload is None:
        return None
    store: DemoStore = request.app.state.store
    if store.is_revoked(payload["jti"]):
        return None
    return payload


def try_get_current_user(request: Request) -> UserOut | None:
    payload = bearer_claims(request)
    if payload is None:
        return None
    store: DemoStore = request.app.state.store
    user = store.get_user(payload["user_id"])
    if user is None or (user.status is not None and user.status is not UserStatusEnum.active):
        return None
    return user


def get_current_user(request: Request) -> UserOut:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: UserOut = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_admin(request: Request) -> UserOut:
    """Require admin role. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin."""
    user = get_current_user(request)
    if user.role != RoleEnum.admin.value:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return user
