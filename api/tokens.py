"""
api/tokens.py -- JWT and password hashing for the demo backend.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the user id, email, role, a random jti and an expiry. Verification
       returns None on any failure; the dependency layer turns that into a 401.
       Logout and refresh revoke the jti in the DemoStore.

  Passwords: bcrypt, used directly. _DUMMY_HASH keeps login timing the same
       whether or not the email exists.

  SECRET_KEY: sourced from core.config.get_settings(), which generates a
       random key when none is configured. Tokens issued by one demo process
       are therefore rejected by the next one unless SECRET_KEY is set.

Layer rule: may import from core/. Nothing in core/, auth/ or services/
imports from here.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from api.models import UserOut
    from api.store import DemoStore

logger = logging.getLogger("crmconsole.api.tokens")

_settings = get_settings()

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Inputs are capped at 255 characters by the request models; bcrypt itself
    only looks at the first 72 bytes.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


_DUMMY_HASH: str = hash_password("crm_console_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, email: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for user_id.

    expire_seconds of 0 uses Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": email,
        "user_id": user_id,
        "role": role,
        "jti": secrets.token_hex(8),
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "user_id" not in payload or "jti" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Login check
# ---------------------------------------------------------------------------


def authenticate_user(store: DemoStore, email: str, password: str) -> UserOut | None:
    """Return the user for a correct email/password pair, else None.

    bcrypt always runs, against _DUMMY_HASH when the email is unknown, so the
    response time does not reveal which emails have accounts.
    """
    user = store.get_user_by_email(email)
    hashed = store.password_hash(user.id) if user is not None else None
    if user is None or hashed is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, hashed):
        return None
    if user.status is not None and user.status.value != "active":
        logger.info("Login refused for %s account", user.status.value)
        return None
    return user
