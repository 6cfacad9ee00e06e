"""
tests/helpers.py -- Test doubles shared by the gateway, session and end-to-end tests.

  - make_response(): builds real requests.Response objects for the gateway
  - TestClientTransport: requests.Session stand-in that routes gateway calls
    into the FastAPI demo backend, so gateway + session + services can be
    exercised end-to-end without a network
  - memory_db_url(): unique named shared-memory SQLite URL
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Optional

import requests
from fastapi.testclient import TestClient


def make_response(
    status: int = 200,
    body: Any = None,
    headers: Optional[dict[str, str]] = None,
    reason: Optional[str] = None,
    raw: Optional[bytes] = None,
) -> requests.Response:
    """Build a requests.Response the way the transport would hand it to the gateway.

    body is JSON-encoded unless raw bytes are given. A None body with no raw
    bytes yields an empty response.
    """
    response = requests.Response()
    response.status_code = status
    response.reason = reason or ""
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    return response


class TestClientTransport:
    """Minimal requests.Session replacement backed by a FastAPI TestClient."""

    __test__ = False  # not a test class despite the name

    def __init__(self, client: TestClient) -> None:
        self.client = client
        self.max_redirects = 30
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def request(self, method: str, url: str, headers=None, timeout=None, json=None, stream=False) -> requests.Response:
        self.calls.append((method, url))
        resp = self.client.request(method, url, headers=headers, json=json)
        return make_response(
            resp.status_code,
            raw=resp.content,
            headers=dict(resp.headers),
            reason=resp.reason_phrase,
        )

    def close(self) -> None:
        self.closed = True


def memory_db_url(prefix: str = "tokens") -> str:
    """Named shared-memory SQLite URL, unique per call.

    Named URIs (not plain :memory:) let the gateway's worker threads and the
    test thread see the same in-memory database.
    """
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
