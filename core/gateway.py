"""
core/gateway.py -- The request gateway: every outbound call to the CRM REST backend.

Responsibilities:
  - URL construction (base URL + endpoint + query string)
  - Authorization: Bearer header from the persisted token, JSON headers
  - Deadline enforcement for the whole call
  - Normalization of every outcome into an Envelope
  - Detection of session expiry (HTTP 401)

Contract: request() never raises for a failed call. Timeouts, HTTP errors,
transport failures and undecodable bodies all come back as
Envelope(success=False). Only asyncio.CancelledError propagates, because it
belongs to the caller's own task.

Timeout model:
  The blocking requests call runs in a worker thread and is raced against
  asyncio.wait_for(). The same deadline is handed to requests as its
  connect/read timeout, and the body is streamed so the worker checks the
  overall deadline between reads. A body still arriving at the deadline is
  closed, which drops the connection, so a slow-dripping backend cannot keep
  the worker (or interpreter shutdown) waiting. Whatever the worker returns
  after the caller has moved on is discarded.

Session expiry:
  A 401 clears the persisted token and produces an envelope with
  session_expired=True. Subscribers registered via on_session_expired() are
  told about it; navigation is their business, not the gateway's.

Layer rule: core/ may not import from auth/, services/, web/, or api/. The
token store is accepted through the TokenSource protocol.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from http import HTTPStatus
from typing import Any, Optional, Protocol
from urllib.parse import urlencode

import requests
from urllib3.exceptions import DecodeError, ProtocolError, ReadTimeoutError

from core.config import get_settings
from core.models import (
    NETWORK_ERROR_MESSAGE,
    REQUEST_FAILED_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    TIMEOUT_MESSAGE,
    UNAUTHORIZED_ERROR,
    Envelope,
    QueryParams,
    QueryValue,
)

logger = logging.getLogger("crmconsole.gateway")

_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})
_CHUNK_SIZE = 64 * 1024

SessionExpiredCallback = Callable[[Envelope], None]


class TokenSource(Protocol):
    """Read/clear access to the persisted bearer token (auth.store.TokenStore)."""

    def get(self) -> Optional[str]: ...

    def clear(self) -> bool: ...


# ---------------------------------------------------------------------------
# URL construction
# ---------------------------------------------------------------------------


def _query_value(value: QueryValue) -> str:
    # Booleans are rendered the way the backend's JS-era clients sent them.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(base_url: str, endpoint: str, params: Optional[QueryParams] = None) -> str:
    """Join base_url and endpoint and append params, dropping keys whose value is None.

    An endpoint that already carries a query string is extended with '&'.
    """
    if not endpoint.startswith("/"):
        endpoint = "/" + endpoint
    url = f"{base_url.rstrip('/')}{endpoint}"
    if not params:
        return url
    pairs = [(key, _query_value(value)) for key, value in params.items() if value is not None]
    if not pairs:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(pairs)}"


# ---------------------------------------------------------------------------
# Error body parsing
# ---------------------------------------------------------------------------


def _error_fields(body: Any) -> tuple[Optional[str], Optional[str]]:
    """Pull (error, message) out of a decoded error body.

    Accepts both the flat {"error": "...", "message": "..."} shape and the
    nested {"error": {"code": "...", "message": "..."}} shape.
    """
    if not isinstance(body, dict):
        return None, None
    error = body.get("error")
    message = body.get("message") if isinstance(body.get("message"), str) else None
    if isinstance(error, dict):
        nested_message = error.get("message") if isinstance(error.get("message"), str) else None
        code = error.get("code") if isinstance(error.get("code"), str) else None
        return code or nested_message, message or nested_message
    if isinstance(error, str):
        return error, message
    return None, message


def _read_body(response: requests.Response, deadline: float) -> bytes:
    """Read a streamed body, giving up once time.monotonic() passes deadline.

    read1() returns whatever the socket has, so the deadline is checked after
    every arrival rather than once per full chunk. Responses built without a
    raw stream already hold their body.
    """
    raw = response.raw
    if raw is None:
        return response.content
    chunks: list[bytes] = []
    while True:
        if time.monotonic() >= deadline:
            raise requests.Timeout("deadline passed while the response body was still arriving")
        try:
            chunk = raw.read1(_CHUNK_SIZE, decode_content=True)
        except ReadTimeoutError as e:
            raise requests.ReadTimeout(e) from e
        except ProtocolError as e:
            raise requests.exceptions.ChunkedEncodingError(e) from e
        except DecodeError as e:
            raise requests.exceptions.ContentDecodingError(e) from e
        if not chunk:
            break
        chunks.append(chunk)
    raw.release_conn()
    return b"".join(chunks)


def _status_text(response: requests.Response) -> str:
    if getattr(response, "reason", None):
        return response.reason
    try:
        return HTTPStatus(response.status_code).phrase
    except ValueError:
        return f"HTTP {response.status_code}"


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class RequestGateway:
    """Single chokepoint for calls to the REST backend.

    Usage:
        gateway = RequestGateway(TokenStore())
        envelope = await gateway.request("/users", "GET", params={"page": 1})
        if envelope.success:
            ...
        gateway.close()
    """

    def __init__(
        self,
        tokens: TokenSource,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._tokens = tokens
        # One requests.Session per gateway: connection pooling, and cookies
        # set by the backend are sent back on every later call.
        self._http = session if session is not None else requests.Session()
        self._http.max_redirects = 3
        self._expiry_listeners: list[SessionExpiredCallback] = []

    # ------------------------------------------------------------------
    # Session-expired subscription
    # ------------------------------------------------------------------

    def on_session_expired(self, callback: SessionExpiredCallback) -> Callable[[], None]:
        """Register callback for 401 responses. Returns a function that unsubscribes it."""
        self._expiry_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._expiry_listeners:
                self._expiry_listeners.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    def build_url(self, endpoint: str, params: Optional[QueryParams] = None) -> str:
        return build_url(self.base_url, endpoint, params)

    def _headers(self, token: Optional[str]) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(
        self, method: str, url: str, headers: dict[str, str], body: Any, deadline: float
    ) -> tuple[requests.Response, bytes]:
        """Blocking HTTP call; runs in a worker thread. Returns the response and its body."""
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self.timeout, "stream": True}
        if body is not None:
            kwargs["json"] = body
        response = self._http.request(method, url, **kwargs)
        try:
            return response, _read_body(response, deadline)
        except BaseException:
            response.close()
            raise

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        params: Optional[QueryParams] = None,
    ) -> Envelope:
        """Issue one call and return its Envelope. Never raises for a failed call."""
        method = method.upper()
        if method not in _METHODS:
            return Envelope.fail(f"Unsupported HTTP method: {method}", NETWORK_ERROR_MESSAGE)

        try:
            url = self.build_url(endpoint, params)
            token = self._tokens.get()
            payload = body if method != "GET" else None
            start = time.perf_counter()
            deadline = time.monotonic() + self.timeout
            try:
                response, content = await asyncio.wait_for(
                    asyncio.to_thread(self._send, method, url, self._headers(token), payload, deadline),
                    timeout=self.timeout,
                )
            except (asyncio.TimeoutError, requests.Timeout):
                logger.warning("%s %s timed out after %.1fs", method, endpoint, self.timeout)
                return Envelope.fail(TIMEOUT_MESSAGE, TIMEOUT_MESSAGE)
            except requests.RequestException as exc:
                logger.warning("%s %s failed: %s", method, endpoint, exc)
                return Envelope.fail(str(exc) or type(exc).__name__, NETWORK_ERROR_MESSAGE)

            ms = (time.perf_counter() - start) * 1000
            logger.debug("%s %s %d %.1fms", method, endpoint, response.status_code, ms)
            return self._normalize(response, content)
        except Exception as exc:
            # Token storage errors and anything else unexpected.
            logger.warning("%s %s could not be completed: %s", method, endpoint, exc)
            return Envelope.fail(str(exc) or type(exc).__name__, REQUEST_FAILED_MESSAGE)

    # ------------------------------------------------------------------
    # Response normalization
    # ------------------------------------------------------------------

    def _normalize(self, response: requests.Response, content: bytes) -> Envelope:
        status = response.status_code
        if status == 401:
            return self._expire_session()
        if not 200 <= status < 300:
            return self._http_error(response, content)
        if status == 204 or not content:
            return Envelope.ok()

        try:
            body = json.loads(content)
        except ValueError:
            # The server answered; what it sent just is not JSON.
            return Envelope.fail("Response body is not valid JSON", REQUEST_FAILED_MESSAGE, status)
        if isinstance(body, dict):
            data = body["data"] if body.get("data") is not None else body
            message = body.get("message") if isinstance(body.get("message"), str) else None
            return Envelope.ok(data, message)
        return Envelope.ok(body)

    def _http_error(self, response: requests.Response, content: bytes) -> Envelope:
        try:
            body = json.loads(content) if content else None
        except ValueError:
            body = None
        error, message = _error_fields(body)
        return Envelope.fail(error or _status_text(response), message, response.status_code)

    def _expire_session(self) -> Envelope:
        self._tokens.clear()
        envelope = Envelope.fail(
            UNAUTHORIZED_ERROR,
            SESSION_EXPIRED_MESSAGE,
            status_code=401,
            session_expired=True,
        )
        logger.info("Backend rejected the session (401); persisted token cleared")
        for callback in list(self._expiry_listeners):
            try:
                callback(envelope)
            except Exception:
                logger.exception("Session-expired subscriber %r failed", callback)
        return envelope

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    async def __aenter__(self) -> "RequestGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
