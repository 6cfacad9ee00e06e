"""
core/models.py -- Domain dataclasses shared by the gateway, session and shell layers.

The wire format (camelCase JSON) is owned by api/models.py. These dataclasses
are the in-process shapes every gateway call and list operation produces.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# View paths understood by the application shell and the route guards.
LOGIN_VIEW = "/login"
REGISTER_VIEW = "/register"
LANDING_VIEW = "/"

TIMEOUT_MESSAGE = "Request timeout"
UNAUTHORIZED_ERROR = "Unauthorized"
SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
NETWORK_ERROR_MESSAGE = "Could not reach the server."
REQUEST_FAILED_MESSAGE = "The request could not be completed."

# Query string values. Keys whose value is None are dropped by build_url().
QueryValue = Union[str, int, float, bool, None]
QueryParams = dict[str, QueryValue]


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Envelope:
    """Normalized result of one call through the request gateway.

    success=True never carries an error; success=False never carries data.
    session_expired marks the 401 variant so a coordinator can react to it
    without inspecting status codes.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    status_code: Optional[int] = None
    session_expired: bool = False

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("A successful envelope cannot carry an error")
        if not self.success and self.data is not None:
            raise ValueError("A failed envelope cannot carry data")

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "Envelope":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        error: str,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        session_expired: bool = False,
    ) -> "Envelope":
        return cls(
            success=False,
            error=error,
            message=message,
            status_code=status_code,
            session_expired=session_expired,
        )

    @property
    def user_message(self) -> str:
        """Text suitable for a notification: the backend message, else a generic fallback."""
        if self.message:
            return self.message
        if self.success:
            return ""
        return REQUEST_FAILED_MESSAGE

    def to_dict(self) -> dict[str, Any]:
        """Render the envelope in its wire shape, omitting absent fields."""
        out: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = self.data
        if self.error is not None:
            out["error"] = self.error
        if self.message is not None:
            out["message"] = self.message
        if self.status_code is not None:
            out["statusCode"] = self.status_code
        return out


# ---------------------------------------------------------------------------
# Paginated collection
# ---------------------------------------------------------------------------


@dataclass
class PaginatedCollection:
    """One page of a list-style resource.

    total_pages is always derived as ceil(total / page_size) so the invariant
    holds even when a backend reports a stale or missing totalPages.
    """

    items: list[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 0
    total_pages: int = 0

    def __post_init__(self) -> None:
        self.total_pages = math.ceil(self.total / self.page_size) if self.page_size > 0 else 0

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        item_factory: Optional[Callable[[Any], Any]] = None,
    ) -> "PaginatedCollection":
        """Build a collection from a decoded list response.

        Accepts the documented {items, total, page, pageSize, totalPages}
        object, and a bare JSON array as a single unpaged page.
        """
        if isinstance(payload, list):
            raw_items = payload
            total = len(payload)
            page = 1
            page_size = len(payload)
        elif isinstance(payload, dict):
            raw_items = payload.get("items") or []
            total = int(payload.get("total", len(raw_items)))
            page = int(payload.get("page", 1))
            page_size = int(payload.get("pageSize") or payload.get("limit") or len(raw_items))
        else:
            raise ValueError(f"Not a paginated payload: {type(payload).__name__}")

        items = [item_factory(item) for item in raw_items] if item_factory else list(raw_items)
        return cls(items=items, total=total, page=page, page_size=page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
