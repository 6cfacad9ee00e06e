"""
Wire-contract models for the CRM REST API.

These Pydantic v2 models define the JSON shapes on the wire (camelCase keys).
Both sides of the contract use them:
  - services/ serializes request payloads with them before handing the dict
    to the request gateway
  - the FastAPI demo backend in api/routes/v1/ validates request bodies and
    renders responses with them

They are intentionally separate from the dataclasses in core/models.py and
auth/models.py, which own the in-process representation.
"""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for every contract model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys and unset optionals left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class UserStatusEnum(str, Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


class RoleEnum(str, Enum):
    admin = "admin"
    manager = "manager"
    user = "user"


class OrderStatusEnum(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatusEnum(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"


class ExportFormatEnum(str, Enum):
    csv = "csv"
    excel = "excel"


class GroupByEnum(str, Enum):
    day = "day"
    week = "week"
    month = "month"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginData(CamelModel):
    """Request body for POST /auth/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class RegisterData(CamelModel):
    """Request body for POST /auth/register."""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class ForgotPasswordData(CamelModel):
    email: str = Field(min_length=1, max_length=255)


class ResetPasswordData(CamelModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserOut(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: str
    avatar: Optional[str] = None
    created_at: Optional[str] = None
    status: Optional[UserStatusEnum] = None


class AuthPayload(CamelModel):
    """data of a successful POST /auth/login or /auth/register."""

    user: UserOut
    token: str


class TokenPayload(CamelModel):
    token: str


class UserCreateData(CamelModel):
    """Request body for POST /users."""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    role: RoleEnum = RoleEnum.user


class UserUpdateData(CamelModel):
    """Request body for PUT /users/{id}. Only the fields that are set are sent."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, min_length=1, max_length=255)
    role: Optional[RoleEnum] = None
    status: Optional[UserStatusEnum] = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderItem(CamelModel):
    product_id: str
    product_name: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)


class OrderOut(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    customer_name: str
    customer_email: str
    items: list[OrderItem]
    total: float
    status: OrderStatusEnum
    payment_status: PaymentStatusEnum
    created_at: str
    updated_at: str


class OrderCreateData(CamelModel):
    """Request body for POST /orders."""

    user_id: str = Field(min_length=1)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: str = Field(min_length=1, max_length=255)
    items: list[OrderItem] = Field(min_length=1)


class OrderUpdateData(CamelModel):
    """Request body for PUT /orders/{id}."""

    status: Optional[OrderStatusEnum] = None
    payment_status: Optional[PaymentStatusEnum] = None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductOut(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    price: float
    stock: int
    category: str
    images: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class ProductCreateData(CamelModel):
    """Request body for POST /products."""

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    category: str = Field(min_length=1, max_length=100)
    images: Optional[list[str]] = None


class ProductUpdateData(CamelModel):
    """Request body for PUT /products/{id}."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    price: Optional[float] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    images: Optional[list[str]] = None


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class CountPoint(CamelModel):
    date: str
    count: int


class RevenuePoint(CamelModel):
    date: str
    revenue: float


class TopProduct(ProductOut):
    sold_count: int


class DashboardStats(CamelModel):
    """data of GET /analytics/dashboard."""

    total_users: int
    total_orders: int
    total_revenue: float
    average_order_value: float
    recent_orders: list[OrderOut] = Field(default_factory=list)
    top_products: list[TopProduct] = Field(default_factory=list)
    user_growth: list[CountPoint] = Field(default_factory=list)
    revenue_trend: list[RevenuePoint] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class Page(CamelModel, Generic[T]):
    """Paginated list body: {items, total, page, pageSize, totalPages}."""

    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


def _wire(value: Any) -> Any:
    if isinstance(value, Page):
        return {
            "items": [_wire(item) for item in value.items],
            "total": value.total,
            "page": value.page,
            "pageSize": value.page_size,
            "totalPages": value.total_pages,
        }
    if isinstance(value, CamelModel):
        return value.to_wire()
    if isinstance(value, list):
        return [_wire(item) for item in value]
    return value


def data_response(data: Any, message: Optional[str] = None) -> dict:
    """Build a {data, message?} success body, serializing contract models to camelCase."""
    body: dict = {"data": _wire(data)}
    if message is not None:
        body["message"] = message
    return body


class ErrorBody(CamelModel):
    """Failure body returned by the demo backend on every 4xx/5xx."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: str
    message: str


class HealthResponse(CamelModel):
    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
