"""
tests/test_services.py -- The typed resource wrappers in services/.

Each wrapper is checked for the endpoint, method, body and query parameters
it hands to the gateway. The gateway is a MagicMock whose request() is an
AsyncMock, so no HTTP is involved.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.models import GroupByEnum, OrderItem, OrderCreateData, ProductUpdateData, UserCreateData, UserUpdateData
from core.models import Envelope, PaginatedCollection
from services.base import parse_page, to_wire
from services.client import ApiClient


@pytest.fixture()
def gateway() -> MagicMock:
    gw = MagicMock()
    gw.request = AsyncMock(return_value=Envelope.ok({"items": [], "total": 0, "page": 1, "pageSize": 10}))
    return gw


@pytest.fixture()
def api(gateway) -> ApiClient:
    return ApiClient(gateway)


def _run(coro):
    return asyncio.run(coro)


class TestAuthService:
    def test_login_posts_credentials(self, api, gateway) -> None:
        _run(api.auth.login("admin@example.com", "secret"))
        gateway.request.assert_awaited_once_with(
            "/auth/login", "POST", {"email": "admin@example.com", "password": "secret"}
        )

    def test_register_posts_name_email_password(self, api, gateway) -> None:
        _run(api.auth.register("Ann", "ann@example.com", "pw"))
        args = gateway.request.call_args.args
        assert args[0] == "/auth/register"
        assert args[2] == {"name": "Ann", "email": "ann@example.com", "password": "pw"}

    def test_me_is_a_get(self, api, gateway) -> None:
        _run(api.auth.me())
        gateway.request.assert_awaited_once_with("/auth/me", "GET", params=None)

    def test_logout_and_refresh_post_without_body(self, api, gateway) -> None:
        _run(api.auth.logout())
        _run(api.auth.refresh_token())
        calls = [call.args for call in gateway.request.call_args_list]
        assert calls == [("/auth/logout", "POST", None), ("/auth/refresh-token", "POST", None)]

    def test_password_reset_flow_bodies(self, api, gateway) -> None:
        _run(api.auth.forgot_password("ann@example.com"))
        assert gateway.request.call_args.args[2] == {"email": "ann@example.com"}
        _run(api.auth.reset_password("reset-tok", "new-pw"))
        assert gateway.request.call_args.args[2] == {"token": "reset-tok", "password": "new-pw"}


class TestUserService:
    def test_get_all_passes_filters(self, api, gateway) -> None:
        _run(api.users.get_all(page=2, limit=5, search="jane", role="admin"))
        gateway.request.assert_awaited_once_with(
            "/users",
            "GET",
            params={"page": 2, "limit": 5, "search": "jane", "role": "admin", "status": None},
        )

    def test_create_serializes_camel_case(self, api, gateway) -> None:
        _run(api.users.create(UserCreateData(name="Ann", email="ann@example.com", password="pw")))
        endpoint, method, body = gateway.request.call_args.args
        assert (endpoint, method) == ("/users", "POST")
        assert body == {"name": "Ann", "email": "ann@example.com", "password": "pw", "role": "user"}

    def test_update_omits_unset_fields(self, api, gateway) -> None:
        _run(api.users.update("u3", UserUpdateData(status="suspended")))
        assert gateway.request.call_args.args == ("/users/u3", "PUT", {"status": "suspended"})

    def test_delete(self, api, gateway) -> None:
        _run(api.users.delete("u3"))
        assert gateway.request.call_args.args == ("/users/u3", "DELETE")

    def test_export_validates_format(self, api, gateway) -> None:
        _run(api.users.export())
        assert gateway.request.call_args.kwargs["params"] == {"format": "csv"}

    def test_unknown_export_format_fails_without_a_call(self, api, gateway) -> None:
        envelope = _run(api.users.export("pdf"))
        assert envelope.success is False
        assert envelope.error == "invalid_argument"
        assert "csv, excel" in envelope.message
        gateway.request.assert_not_called()


class TestOrderService:
    def test_get_all_maps_from_to_query_key(self, api, gateway) -> None:
        _run(api.orders.get_all(status="pending", from_="2026-01-01", to="2026-02-01"))
        params = gateway.request.call_args.kwargs["params"]
        assert params["from"] == "2026-01-01"
        assert params["to"] == "2026-02-01"
        assert params["status"] == "pending"

    def test_get_by_user(self, api, gateway) -> None:
        _run(api.orders.get_by_user("u2", page=1))
        args, kwargs = gateway.request.call_args
        assert args[0] == "/users/u2/orders"
        assert kwargs["params"] == {"page": 1, "limit": None}

    def test_create_nests_items_in_camel_case(self, api, gateway) -> None:
        data = OrderCreateData(
            user_id="u2",
            customer_name="Jane Cooper",
            customer_email="jane@example.com",
            items=[OrderItem(product_id="p1", product_name="Wireless Mouse", price=29.99, quantity=2)],
        )
        _run(api.orders.create(data))
        body = gateway.request.call_args.args[2]
        assert body["userId"] == "u2"
        assert body["items"][0] == {"productId": "p1", "productName": "Wireless Mouse", "price": 29.99, "quantity": 2}

    def test_export_defaults_to_csv(self, api, gateway) -> None:
        _run(api.orders.export(status="completed"))
        params = gateway.request.call_args.kwargs["params"]
        assert params == {"format": "csv", "from": None, "to": None, "status": "completed"}

    def test_unknown_export_format_fails_without_a_call(self, api, gateway) -> None:
        envelope = _run(api.orders.export("pdf"))
        assert envelope.success is False
        gateway.request.assert_not_called()


class TestProductService:
    def test_price_filters_use_camel_case_keys(self, api, gateway) -> None:
        _run(api.products.get_all(category="Electronics", min_price=10, max_price=100))
        params = gateway.request.call_args.kwargs["params"]
        assert params["minPrice"] == 10
        assert params["maxPrice"] == 100
        assert params["category"] == "Electronics"

    def test_update_accepts_plain_dict(self, api, gateway) -> None:
        _run(api.products.update("p1", {"stock": 4}))
        assert gateway.request.call_args.args == ("/products/p1", "PUT", {"stock": 4})

    def test_update_with_model(self, api, gateway) -> None:
        _run(api.products.update("p1", ProductUpdateData(price=9.5)))
        assert gateway.request.call_args.args[2] == {"price": 9.5}

    def test_categories(self, api, gateway) -> None:
        _run(api.products.get_categories())
        assert gateway.request.call_args.args[0] == "/products/categories"


class TestAnalyticsService:
    def test_dashboard(self, api, gateway) -> None:
        _run(api.analytics.get_dashboard_stats())
        assert gateway.request.call_args.args[0] == "/analytics/dashboard"

    def test_revenue_group_by(self, api, gateway) -> None:
        _run(api.analytics.get_revenue_stats(group_by="week"))
        assert gateway.request.call_args.kwargs["params"]["groupBy"] == "week"

    def test_revenue_rejects_unknown_grouping(self, api, gateway) -> None:
        envelope = _run(api.analytics.get_revenue_stats(group_by="hour"))
        assert envelope.success is False
        assert envelope.error == "invalid_argument"
        gateway.request.assert_not_called()

    def test_revenue_accepts_enum_member(self, api, gateway) -> None:
        _run(api.analytics.get_revenue_stats(group_by=GroupByEnum.month))
        assert gateway.request.call_args.kwargs["params"]["groupBy"] == "month"


class TestHelpers:
    def test_to_wire_copies_dicts(self) -> None:
        payload = {"a": 1}
        out = to_wire(payload)
        assert out == payload
        assert out is not payload

    def test_parse_page_of_failed_envelope_is_none(self) -> None:
        assert parse_page(Envelope.fail("Bad Gateway", None, 502)) is None

    def test_parse_page_builds_collection(self) -> None:
        page = parse_page(Envelope.ok({"items": [{"id": "u1"}], "total": 11, "page": 1, "pageSize": 10}))
        assert isinstance(page, PaginatedCollection)
        assert page.total_pages == 2
        assert page.items == [{"id": "u1"}]

    def test_wrappers_return_gateway_envelope_untouched(self, api, gateway) -> None:
        failure = Envelope.fail("not_found", "User u9 not found.", 404)
        gateway.request.return_value = failure
        assert _run(api.users.get_by_id("u9")) is failure
