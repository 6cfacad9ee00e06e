"""
auth/store.py -- SQLAlchemy Core persistence for the session token.

Pattern: Repository. TokenStore is the only code that touches the table;
the gateway reads the token through it on every call and the session
manager writes it on login / logout.

Storage model: one key/value table in client-local SQLite. The token lives
under a single stable key (Settings.token_key). A missing row means the
client is anonymous.

Concurrency:
  get/set/clear are serialized by a threading.Lock so a logout clearing the
  token can never interleave with a login writing one. The gateway reads the
  token on the event loop thread; worker threads never touch the store.

DB path: ~/.crm-console/session.db by default (Settings.token_db_url).

Layer rule: no imports from api/, web/, or services/. Imports from core/ are allowed.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from core.config import get_settings

logger = logging.getLogger("crmconsole.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_kv = Table(
    "client_storage",
    _metadata,
    Column("key", String(100), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so a second console process can read while one writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure_parent_dir(db_url: str) -> None:
    """Create the directory holding a file-backed SQLite DB on first use."""
    prefix = "sqlite:///"
    if not db_url.startswith(prefix):
        return
    path = db_url[len(prefix) :]
    if not path or path.startswith("file:") or path == ":memory:":
        return
    Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TokenStore:
    """Persisted bearer token, one row under a stable key.

    Usage:
        store = TokenStore()
        store.set("eyJhbGciOi...")
        token = store.get()      # str or None
        store.clear()
        store.close()
    """

    def __init__(self, db_url: str | None = None, key: str | None = None) -> None:
        settings = get_settings()
        db_url = db_url or settings.token_db_url
        self.key = key or settings.token_key
        _ensure_parent_dir(db_url)

        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self._lock = threading.Lock()

    def get(self) -> str | None:
        """Return the persisted token, or None when the client is anonymous."""
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(_kv.select().where(_kv.c.key == self.key)).fetchone()
        return row.value if row is not None else None

    def set(self, token: str) -> None:
        """Persist token, replacing any previous value."""
        if not token:
            raise ValueError("Refusing to persist an empty token")
        with self._lock, self.engine.begin() as conn:
            conn.execute(_kv.delete().where(_kv.c.key == self.key))
            conn.execute(_kv.insert().values(key=self.key, value=token, updated_at=_now_iso()))
        logger.debug("Session token persisted under key %r", self.key)

    def clear(self) -> bool:
        """Delete the persisted token. Returns True if one was present."""
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(_kv.delete().where(_kv.c.key == self.key))
        removed = result.rowcount > 0
        if removed:
            logger.debug("Session token cleared")
        return removed

    def close(self) -> None:
        self.engine.dispose()
