"""
api/store.py -- In-memory data store for the demo backend.

Pattern: Repository. Route handlers never touch the dicts directly; every
read and write goes through a DemoStore method holding the store lock, since
FastAPI runs sync handlers in a thread pool.

Records are the wire models from api/models.py and are never mutated in
place: an update stores a model_copy(update=...) in the record's slot.

The store is seeded on construction:
  - admin@example.com / admin123 (role admin)
  - a manager and four users (password "password123")
  - six products across three categories
  - eight orders spread over the last three months

Nothing persists: each process (and each TestClient) starts from the seed.
"""

from __future__ import annotations

import logging
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from api.models import (
    CountPoint,
    DashboardStats,
    OrderItem,
    OrderOut,
    OrderStatusEnum,
    Page,
    PaymentStatusEnum,
    ProductOut,
    RevenuePoint,
    RoleEnum,
    TopProduct,
    UserOut,
    UserStatusEnum,
)
from api.tokens import hash_password

logger = logging.getLogger("crmconsole.api.store")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat()


def _period_key(created_at: str, group_by: str) -> str:
    """Bucket an ISO timestamp by day, ISO week, or month."""
    if group_by == "day":
        return created_at[:10]
    if group_by == "week":
        year, week, _ = datetime.fromisoformat(created_at).isocalendar()
        return f"{year}-W{week:02d}"
    return created_at[:7]


def _in_range(created_at: str, from_: Optional[str], to: Optional[str]) -> bool:
    day = created_at[:10]
    if from_ and day < from_[:10]:
        return False
    if to and day > to[:10]:
        return False
    return True


def paginate(items: list[Any], page: Optional[int], limit: Optional[int]) -> Page:
    """Slice items into one page; page is 1-based and clamped to >= 1."""
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    start = (page - 1) * limit
    total = len(items)
    return Page(
        items=items[start : start + limit],
        total=total,
        page=page,
        page_size=limit,
        total_pages=-(-total // limit),
    )


class DemoStore:
    """Thread-safe in-memory users, products and orders.

    Usage:
        store = DemoStore()
        user = store.get_user_by_email("admin@example.com")
        page = store.list_users(page=1, limit=10, search="jane")
    """

    def __init__(self, seed: bool = True) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, UserOut] = {}
        self._passwords: dict[str, str] = {}
        self._products: dict[str, ProductOut] = {}
        self._orders: dict[str, OrderOut] = {}
        self._revoked: set[str] = set()
        self._reset_tokens: dict[str, str] = {}
        self._next_id = 1
        if seed:
            self._seed()

    # ------------------------------------------------------------------
    # Ids
    # ------------------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        with self._lock:
            value = f"{prefix}{self._next_id}"
            self._next_id += 1
            return value

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: RoleEnum = RoleEnum.user,
        status: UserStatusEnum = UserStatusEnum.active,
        password_hash: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> UserOut:
        """Insert a user. Raises ValueError when the email is already registered."""
        hashed = password_hash or hash_password(password)
        with self._lock:
            if self._find_email(email) is not None:
                raise ValueError(f"Email already registered: {email}")
            user = UserOut(
                id=self._new_id("u"),
                name=name,
                email=email.lower(),
                role=role.value,
                status=status,
                created_at=created_at or _iso(_now()),
            )
            self._users[user.id] = user
            self._passwords[user.id] = hashed
        logger.info("User %s created (role=%s)", user.id, user.role)
        return user

    def _find_email(self, email: str) -> Optional[UserOut]:
        wanted = email.strip().lower()
        for user in self._users.values():
            if user.email == wanted:
                return user
        return None

    def get_user(self, user_id: str) -> Optional[UserOut]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserOut]:
        with self._lock:
            return self._find_email(email)

    def password_hash(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._passwords.get(user_id)

    def set_password(self, user_id: str, password: str) -> None:
        hashed = hash_password(password)
        with self._lock:
            self._passwords[user_id] = hashed

    def list_users(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Page:
        return paginate(self.filter_users(search, role, status), page, limit)

    def filter_users(
        self,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[UserOut]:
        needle = (search or "").strip().lower()
        with self._lock:
            users = list(self._users.values())
        return [
            user
            for user in users
            if (not needle or needle in user.name.lower() or needle in user.email)
            and (not role or user.role == role)
            and (not status or (user.status is not None and user.status.value == status))
        ]

    def update_user(self, user_id: str, **fields: Any) -> Optional[UserOut]:
        """Apply the non-None fields. Raises ValueError when a new email is taken."""
        changes = {key: value for key, value in fields.items() if value is not None}
        if isinstance(changes.get("role"), RoleEnum):
            changes["role"] = changes["role"].value
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            if "email" in changes:
                changes["email"] = changes["email"].lower()
                other = self._find_email(changes["email"])
                if other is not None and other.id != user_id:
                    raise ValueError(f"Email already registered: {changes['email']}")
            updated = user.model_copy(update=changes)
            self._users[user_id] = updated
        return updated

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            self._passwords.pop(user_id, None)
            return self._users.pop(user_id, None) is not None

    # ------------------------------------------------------------------
    # Token revocation and password reset
    # ------------------------------------------------------------------

    def revoke(self, jti: str) -> None:
        with self._lock:
            self._revoked.add(jti)

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            return jti in self._revoked

    def issue_reset_token(self, email: str) -> Optional[str]:
        """Create a one-time reset token for email, or None for an unknown address."""
        with self._lock:
            user = self._find_email(email)
            if user is None:
                return None
            token = secrets.token_urlsafe(24)
            self._reset_tokens[token] = user.id
            return token

    def consume_reset_token(self, token: str) -> Optional[str]:
        """Return the user id the token was issued for, invalidating it."""
        with self._lock:
            return self._reset_tokens.pop(token, None)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, **fields: Any) -> ProductOut:
        stamp = fields.pop("created_at", None) or _iso(_now())
        fields["images"] = fields.get("images") or []
        with self._lock:
            product = ProductOut(id=self._new_id("p"), created_at=stamp, updated_at=stamp, **fields)
            self._products[product.id] = product
        return product

    def get_product(self, product_id: str) -> Optional[ProductOut]:
        with self._lock:
            return self._products.get(product_id)

    def list_products(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> Page:
        needle = (search or "").strip().lower()
        with self._lock:
            products = list(self._products.values())
        matches = [
            product
            for product in products
            if (not needle or needle in product.name.lower() or needle in product.description.lower())
            and (not category or product.category.lower() == category.lower())
            and (min_price is None or product.price >= min_price)
            and (max_price is None or product.price <= max_price)
        ]
        return paginate(matches, page, limit)

    def update_product(self, product_id: str, **fields: Any) -> Optional[ProductOut]:
        changes = {key: value for key, value in fields.items() if value is not None}
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            updated = product.model_copy(update={**changes, "updated_at": _iso(_now())})
            self._products[product_id] = updated
        return updated

    def delete_product(self, product_id: str) -> bool:
        with self._lock:
            return self._products.pop(product_id, None) is not None

    def categories(self) -> list[str]:
        with self._lock:
            return sorted({product.category for product in self._products.values()})

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        user_id: str,
        customer_name: str,
        customer_email: str,
        items: list[OrderItem],
        status: OrderStatusEnum = OrderStatusEnum.pending,
        payment_status: PaymentStatusEnum = PaymentStatusEnum.pending,
        created_at: Optional[str] = None,
    ) -> OrderOut:
        stamp = created_at or _iso(_now())
        total = round(sum(item.price * item.quantity for item in items), 2)
        with self._lock:
            order = OrderOut(
                id=self._new_id("o"),
                user_id=user_id,
                customer_name=customer_name,
                customer_email=customer_email,
                items=items,
                total=total,
                status=status,
                payment_status=payment_status,
                created_at=stamp,
                updated_at=stamp,
            )
            self._orders[order.id] = order
        return order

    def get_order(self, order_id: str) -> Optional[OrderOut]:
        with self._lock:
            return self._orders.get(order_id)

    def filter_orders(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[OrderOut]:
        needle = (search or "").strip().lower()
        with self._lock:
            orders = sorted(self._orders.values(), key=lambda order: order.created_at, reverse=True)
        return [
            order
            for order in orders
            if (
                not needle
                or needle in order.id.lower()
                or needle in order.customer_name.lower()
                or needle in order.customer_email.lower()
            )
            and (not status or order.status.value == status)
            and (not user_id or order.user_id == user_id)
            and _in_range(order.created_at, from_, to)
        ]

    def list_orders(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Page:
        return paginate(self.filter_orders(search, status, from_, to, user_id), page, limit)

    def update_order(self, order_id: str, **fields: Any) -> Optional[OrderOut]:
        changes = {key: value for key, value in fields.items() if value is not None}
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return None
            updated = order.model_copy(update={**changes, "updated_at": _iso(_now())})
            self._orders[order_id] = updated
        return updated

    def delete_order(self, order_id: str) -> bool:
        with self._lock:
            return self._orders.pop(order_id, None) is not None

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def _revenue_orders(self, from_: Optional[str] = None, to: Optional[str] = None) -> list[OrderOut]:
        return [
            order
            for order in self.filter_orders(from_=from_, to=to)
            if order.payment_status is PaymentStatusEnum.paid and order.status is not OrderStatusEnum.cancelled
        ]

    def dashboard(self) -> DashboardStats:
        orders = self.filter_orders()
        paid = self._revenue_orders()
        revenue = round(sum(order.total for order in paid), 2)

        sold: dict[str, int] = {}
        for order in paid:
            for item in order.items:
                sold[item.product_id] = sold.get(item.product_id, 0) + item.quantity
        top: list[TopProduct] = []
        for product_id, count in sorted(sold.items(), key=lambda pair: pair[1], reverse=True)[:5]:
            product = self.get_product(product_id)
            if product is not None:
                top.append(TopProduct(**product.model_dump(), sold_count=count))

        with self._lock:
            user_count = len(self._users)
        return DashboardStats(
            total_users=user_count,
            total_orders=len(orders),
            total_revenue=revenue,
            average_order_value=round(revenue / len(paid), 2) if paid else 0.0,
            recent_orders=orders[:5],
            top_products=top,
            user_growth=self.user_growth("month"),
            revenue_trend=self.revenue_trend(group_by="month"),
        )

    def user_growth(
        self, group_by: str = "month", from_: Optional[str] = None, to: Optional[str] = None
    ) -> list[CountPoint]:
        with self._lock:
            stamps = [user.created_at or "" for user in self._users.values()]
        return _count_by_period([s for s in stamps if s and _in_range(s, from_, to)], group_by)

    def user_stats(self, from_: Optional[str] = None, to: Optional[str] = None) -> dict[str, Any]:
        with self._lock:
            users = [user for user in self._users.values() if _in_range(user.created_at or "", from_, to)]
        return {
            "total": len(users),
            "byRole": _tally(users, lambda user: user.role),
            "byStatus": _tally(users, lambda user: user.status.value if user.status else "unknown"),
            "growth": [point.model_dump() for point in self.user_growth("month", from_, to)],
        }

    def order_stats(self, from_: Optional[str] = None, to: Optional[str] = None) -> dict[str, Any]:
        orders = self.filter_orders(from_=from_, to=to)
        return {
            "total": len(orders),
            "byStatus": _tally(orders, lambda order: order.status.value),
            "byPaymentStatus": _tally(orders, lambda order: order.payment_status.value),
            "trend": [point.model_dump() for point in _count_by_period([o.created_at for o in orders], "month")],
        }

    def revenue_trend(
        self, from_: Optional[str] = None, to: Optional[str] = None, group_by: str = "month"
    ) -> list[RevenuePoint]:
        buckets: dict[str, float] = {}
        for order in self._revenue_orders(from_, to):
            key = _period_key(order.created_at, group_by)
            buckets[key] = round(buckets.get(key, 0.0) + order.total, 2)
        return [RevenuePoint(date=key, revenue=value) for key, value in sorted(buckets.items())]

    def revenue_stats(
        self, from_: Optional[str] = None, to: Optional[str] = None, group_by: str = "month"
    ) -> dict[str, Any]:
        points = self.revenue_trend(from_, to, group_by)
        return {
            "total": round(sum(point.revenue for point in points), 2),
            "groupBy": group_by,
            "points": [point.model_dump() for point in points],
        }

    # ------------------------------------------------------------------
    # Seed data
    # ------------------------------------------------------------------

    def _seed(self) -> None:
        now = _now()
        shared = hash_password("password123")
        people = [
            ("Admin User", "admin@example.com", RoleEnum.admin, UserStatusEnum.active, 120),
            ("Jane Cooper", "jane@example.com", RoleEnum.manager, UserStatusEnum.active, 95),
            ("Robert Fox", "robert@example.com", RoleEnum.user, UserStatusEnum.active, 70),
            ("Esther Howard", "esther@example.com", RoleEnum.user, UserStatusEnum.active, 44),
            ("Cody Fisher", "cody@example.com", RoleEnum.user, UserStatusEnum.inactive, 30),
            ("Kristin Watson", "kristin@example.com", RoleEnum.user, UserStatusEnum.suspended, 12),
        ]
        users: list[UserOut] = []
        for name, email, role, status, age in people:
            users.append(
                self.create_user(
                    name,
                    email,
                    "",
                    role=role,
                    status=status,
                    password_hash=hash_password("admin123") if role is RoleEnum.admin else shared,
                    created_at=_iso(now - timedelta(days=age)),
                )
            )

        catalog = [
            ("Wireless Mouse", "Ergonomic 2.4 GHz mouse", 29.99, 150, "Electronics"),
            ("Mechanical Keyboard", "Hot-swappable switches, RGB", 119.00, 60, "Electronics"),
            ("27in Monitor", "QHD IPS panel", 329.50, 25, "Electronics"),
            ("Standing Desk", "Electric height adjustment", 549.00, 10, "Furniture"),
            ("Office Chair", "Mesh back, lumbar support", 249.90, 18, "Furniture"),
            ("Notebook Pack", "Five A5 dotted notebooks", 14.50, 400, "Office"),
        ]
        products = [
            self.create_product(
                name=name,
                description=description,
                price=price,
                stock=stock,
                category=category,
                created_at=_iso(now - timedelta(days=100)),
            )
            for name, description, price, stock, category in catalog
        ]

        def line(product: ProductOut, quantity: int) -> OrderItem:
            return OrderItem(product_id=product.id, product_name=product.name, price=product.price, quantity=quantity)

        plan = [
            (users[2], [line(products[0], 2), line(products[5], 3)], "completed", "paid", 80),
            (users[3], [line(products[3], 1)], "completed", "paid", 62),
            (users[2], [line(products[1], 1)], "completed", "paid", 48),
            (users[4], [line(products[4], 2)], "cancelled", "failed", 40),
            (users[3], [line(products[2], 2), line(products[0], 1)], "processing", "paid", 21),
            (users[1], [line(products[5], 10)], "completed", "paid", 9),
            (users[5], [line(products[1], 1), line(products[0], 1)], "pending", "pending", 3),
            (users[2], [line(products[4], 1)], "processing", "paid", 1),
        ]
        for user, items, status, payment, age in plan:
            self.create_order(
                user.id,
                user.name,
                user.email,
                items,
                status=OrderStatusEnum(status),
                payment_status=PaymentStatusEnum(payment),
                created_at=_iso(now - timedelta(days=age)),
            )
        logger.info("Demo store seeded: %d users, %d products, %d orders", len(users), len(products), len(plan))


def _tally(records: list[Any], key: Callable[[Any], str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for record in records:
        label = key(record)
        counts[label] = counts.get(label, 0) + 1
    return counts


def _count_by_period(stamps: list[str], group_by: str) -> list[CountPoint]:
    buckets: dict[str, int] = {}
    for stamp in stamps:
        key = _period_key(stamp, group_by)
        buckets[key] = buckets.get(key, 0) + 1
    return [CountPoint(date=key, count=value) for key, value in sorted(buckets.items())]
