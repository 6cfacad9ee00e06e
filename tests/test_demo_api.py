"""
tests/test_demo_api.py -- Route tests for the FastAPI demo backend (api/).

Tests use FastAPI TestClient against a freshly seeded DemoStore per test
(see the demo_client fixture). The seeded admin is admin@example.com /
admin123; every other seeded account uses password123.

Coverage:
  - health endpoint and the flat error body shape
  - 401 on every protected resource without a token
  - login / me / logout, token revocation, refresh
  - register, forgot/reset password
  - users: list filters, pagination invariants, export CSV, CRUD, admin-only writes
  - orders, products, categories, analytics
"""

from __future__ import annotations

import csv
import io

import pytest
from fastapi.testclient import TestClient

from api.main import API_VERSION


def _login(client: TestClient, email: str, password: str) -> dict[str, str]:
    resp = client.post("/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


def _assert_error(resp, status: int, error: str) -> None:
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == error
    assert isinstance(body["message"], str)


# ---------------------------------------------------------------------------
# Health and error shape
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health_is_public(self, demo_client: TestClient) -> None:
        resp = demo_client.get("/v1/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": API_VERSION}

    def test_unknown_route_uses_error_body(self, demo_client: TestClient) -> None:
        _assert_error(demo_client.get("/v1/nope"), 404, "http_404")

    def test_validation_errors_are_flattened(self, demo_client: TestClient) -> None:
        resp = demo_client.post("/v1/auth/login", json={"email": "admin@example.com"})
        _assert_error(resp, 422, "validation_error")
        assert "password" in resp.json()["message"]


class TestAuthRequired:
    @pytest.mark.parametrize(
        "path",
        [
            "/v1/auth/me",
            "/v1/users",
            "/v1/users/u1",
            "/v1/users/export",
            "/v1/orders",
            "/v1/products",
            "/v1/products/categories",
            "/v1/analytics/dashboard",
        ],
    )
    def test_protected_routes_return_401(self, demo_client: TestClient, path: str) -> None:
        _assert_error(demo_client.get(path), 401, "unauthorized")

    def test_garbage_token_is_401(self, demo_client: TestClient) -> None:
        resp = demo_client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        _assert_error(resp, 401, "unauthorized")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:
    def test_login_returns_user_and_token(self, demo_client: TestClient) -> None:
        resp = demo_client.post("/v1/auth/login", json={"email": "admin@example.com", "password": "admin123"})
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["data"]["user"]["email"] == "admin@example.com"
        assert body["data"]["user"]["role"] == "admin"
        assert "createdAt" in body["data"]["user"]
        assert body["data"]["token"]

    def test_wrong_password_and_unknown_email_look_the_same(self, demo_client: TestClient) -> None:
        wrong = demo_client.post("/v1/auth/login", json={"email": "admin@example.com", "password": "nope"})
        unknown = demo_client.post("/v1/auth/login", json={"email": "ghost@example.com", "password": "nope"})
        _assert_error(wrong, 401, "bad_credentials")
        assert wrong.json() == unknown.json()

    def test_suspended_account_cannot_sign_in(self, demo_client: TestClient) -> None:
        resp = demo_client.post("/v1/auth/login", json={"email": "kristin@example.com", "password": "password123"})
        _assert_error(resp, 401, "bad_credentials")

    def test_login_email_is_case_insensitive(self, demo_client: TestClient) -> None:
        _login(demo_client, "Jane@Example.com", "password123")

    def test_me_returns_current_user(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.get("/v1/auth/me", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == "u1"

    def test_logout_revokes_token(self, demo_client: TestClient, admin_headers) -> None:
        assert demo_client.post("/v1/auth/logout", headers=admin_headers).status_code == 204
        _assert_error(demo_client.get("/v1/auth/me", headers=admin_headers), 401, "unauthorized")

    def test_logout_without_token_succeeds(self, demo_client: TestClient) -> None:
        assert demo_client.post("/v1/auth/logout").status_code == 204

    def test_refresh_swaps_tokens(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.post("/v1/auth/refresh-token", headers=admin_headers)
        assert resp.status_code == 200
        fresh = {"Authorization": f"Bearer {resp.json()['data']['token']}"}
        assert demo_client.get("/v1/auth/me", headers=fresh).status_code == 200
        assert demo_client.get("/v1/auth/me", headers=admin_headers).status_code == 401

    def test_register_then_login(self, demo_client: TestClient) -> None:
        resp = demo_client.post(
            "/v1/auth/register",
            json={"name": "Ann Lee", "email": "ann@example.com", "password": "s3cret!"},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["user"]["role"] == "user"
        _login(demo_client, "ann@example.com", "s3cret!")

    def test_register_duplicate_email_is_409(self, demo_client: TestClient) -> None:
        resp = demo_client.post(
            "/v1/auth/register",
            json={"name": "Impostor", "email": "JANE@example.com", "password": "x"},
        )
        _assert_error(resp, 409, "email_taken")

    def test_forgot_password_is_uniform(self, demo_client: TestClient) -> None:
        known = demo_client.post("/v1/auth/forgot-password", json={"email": "jane@example.com"})
        unknown = demo_client.post("/v1/auth/forgot-password", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_reset_password_with_issued_token(self, demo_client: TestClient) -> None:
        store = demo_client.app.state.store
        token = store.issue_reset_token("jane@example.com")
        resp = demo_client.post("/v1/auth/reset-password", json={"token": token, "password": "brand-new"})
        assert resp.status_code == 200
        _login(demo_client, "jane@example.com", "brand-new")
        again = demo_client.post("/v1/auth/reset-password", json={"token": token, "password": "other"})
        _assert_error(again, 400, "invalid_token")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUsers:
    def test_list_is_paginated(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/users?page=2&limit=4", headers=admin_headers).json()["data"]
        assert data["total"] == 6
        assert data["page"] == 2
        assert data["pageSize"] == 4
        assert data["totalPages"] == 2
        assert len(data["items"]) == 2

    def test_filters(self, demo_client: TestClient, admin_headers) -> None:
        by_status = demo_client.get("/v1/users?status=suspended", headers=admin_headers).json()["data"]
        assert [user["email"] for user in by_status["items"]] == ["kristin@example.com"]
        by_search = demo_client.get("/v1/users?search=cooper", headers=admin_headers).json()["data"]
        assert by_search["total"] == 1

    def test_get_unknown_user_is_404(self, demo_client: TestClient, admin_headers) -> None:
        _assert_error(demo_client.get("/v1/users/u999", headers=admin_headers), 404, "not_found")

    def test_export_returns_csv(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.get("/v1/users/export?format=csv", headers=admin_headers)
        assert resp.status_code == 200
        rows = list(csv.reader(io.StringIO(resp.json()["data"])))
        assert rows[0] == ["id", "name", "email", "role", "status", "createdAt"]
        assert len(rows) == 7

    def test_excel_export_is_rejected(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.get("/v1/users/export?format=excel", headers=admin_headers)
        _assert_error(resp, 400, "unsupported_format")

    def test_admin_crud(self, demo_client: TestClient, admin_headers) -> None:
        created = demo_client.post(
            "/v1/users",
            json={"name": "New Hire", "email": "hire@example.com", "password": "pw", "role": "manager"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        user_id = created.json()["data"]["id"]

        updated = demo_client.put(f"/v1/users/{user_id}", json={"status": "inactive"}, headers=admin_headers)
        assert updated.status_code == 200
        assert updated.json()["data"]["status"] == "inactive"
        assert updated.json()["data"]["name"] == "New Hire"

        assert demo_client.delete(f"/v1/users/{user_id}", headers=admin_headers).status_code == 204
        assert demo_client.get(f"/v1/users/{user_id}", headers=admin_headers).status_code == 404

    def test_update_to_taken_email_is_409(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.put("/v1/users/u3", json={"email": "jane@example.com"}, headers=admin_headers)
        _assert_error(resp, 409, "email_taken")

    def test_admin_cannot_delete_self(self, demo_client: TestClient, admin_headers) -> None:
        _assert_error(demo_client.delete("/v1/users/u1", headers=admin_headers), 400, "cannot_delete_self")

    def test_non_admin_cannot_write(self, demo_client: TestClient) -> None:
        headers = _login(demo_client, "robert@example.com", "password123")
        assert demo_client.get("/v1/users", headers=headers).status_code == 200
        _assert_error(demo_client.delete("/v1/users/u2", headers=headers), 403, "forbidden")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class TestOrders:
    def test_list_is_newest_first(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/orders?limit=100", headers=admin_headers).json()["data"]
        stamps = [order["createdAt"] for order in data["items"]]
        assert data["total"] == 8
        assert stamps == sorted(stamps, reverse=True)

    def test_status_filter(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/orders?status=pending", headers=admin_headers).json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["paymentStatus"] == "pending"

    def test_create_computes_total(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.post(
            "/v1/orders",
            json={
                "userId": "u2",
                "customerName": "Jane Cooper",
                "customerEmail": "jane@example.com",
                "items": [
                    {"productId": "p7", "productName": "Wireless Mouse", "price": 29.99, "quantity": 2},
                    {"productId": "p12", "productName": "Notebook Pack", "price": 14.5, "quantity": 1},
                ],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        order = resp.json()["data"]
        assert order["total"] == pytest.approx(74.48)
        assert order["status"] == "pending"

    def test_create_for_unknown_user_is_422(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.post(
            "/v1/orders",
            json={
                "userId": "u999",
                "customerName": "Ghost",
                "customerEmail": "ghost@example.com",
                "items": [{"productId": "p7", "productName": "Wireless Mouse", "price": 29.99, "quantity": 1}],
            },
            headers=admin_headers,
        )
        _assert_error(resp, 422, "unknown_user")

    def test_update_and_delete(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.put("/v1/orders/o19", json={"status": "completed", "paymentStatus": "paid"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "completed"
        assert demo_client.delete("/v1/orders/o19", headers=admin_headers).status_code == 204
        _assert_error(demo_client.get("/v1/orders/o19", headers=admin_headers), 404, "not_found")

    def test_orders_by_user(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/users/u3/orders", headers=admin_headers).json()["data"]
        assert data["total"] == 3
        assert {order["userId"] for order in data["items"]} == {"u3"}
        _assert_error(demo_client.get("/v1/users/u999/orders", headers=admin_headers), 404, "not_found")

    def test_export(self, demo_client: TestClient, admin_headers) -> None:
        csv_text = demo_client.get("/v1/orders/export?status=completed", headers=admin_headers).json()["data"]
        rows = list(csv.reader(io.StringIO(csv_text)))
        assert rows[0][0] == "id"
        assert len(rows) == 5


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class TestProducts:
    def test_price_range_filter(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/products?minPrice=100&maxPrice=400", headers=admin_headers).json()["data"]
        names = {product["name"] for product in data["items"]}
        assert names == {"Mechanical Keyboard", "27in Monitor", "Office Chair"}

    def test_categories_are_sorted(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/products/categories", headers=admin_headers).json()["data"]
        assert data == ["Electronics", "Furniture", "Office"]

    def test_admin_can_create_and_update(self, demo_client: TestClient, admin_headers) -> None:
        created = demo_client.post(
            "/v1/products",
            json={"name": "Desk Lamp", "price": 39.0, "stock": 12, "category": "Office"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        product = created.json()["data"]
        assert product["images"] == []
        updated = demo_client.put(f"/v1/products/{product['id']}", json={"stock": 0}, headers=admin_headers)
        assert updated.json()["data"]["stock"] == 0
        assert updated.json()["data"]["name"] == "Desk Lamp"

    def test_negative_price_is_rejected(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.post(
            "/v1/products",
            json={"name": "Broken", "price": -1, "stock": 1, "category": "Office"},
            headers=admin_headers,
        )
        _assert_error(resp, 422, "validation_error")

    def test_unknown_product_is_404(self, demo_client: TestClient, admin_headers) -> None:
        _assert_error(demo_client.get("/v1/products/p999", headers=admin_headers), 404, "not_found")


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class TestAnalytics:
    def test_dashboard_counts_paid_revenue(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/analytics/dashboard", headers=admin_headers).json()["data"]
        assert data["totalUsers"] == 6
        assert data["totalOrders"] == 8
        assert data["totalRevenue"] == pytest.approx(1855.37)
        assert data["averageOrderValue"] == pytest.approx(round(1855.37 / 6, 2))
        assert len(data["recentOrders"]) == 5
        assert data["topProducts"][0]["name"] == "Notebook Pack"
        assert data["topProducts"][0]["soldCount"] == 13

    def test_user_stats(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/analytics/users", headers=admin_headers).json()["data"]
        assert data["total"] == 6
        assert data["byRole"] == {"admin": 1, "manager": 1, "user": 4}
        assert data["byStatus"]["suspended"] == 1

    def test_order_stats(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/analytics/orders", headers=admin_headers).json()["data"]
        assert data["byStatus"]["completed"] == 4
        assert data["byPaymentStatus"] == {"paid": 6, "failed": 1, "pending": 1}

    def test_revenue_grouping(self, demo_client: TestClient, admin_headers) -> None:
        data = demo_client.get("/v1/analytics/revenue?groupBy=day", headers=admin_headers).json()["data"]
        assert data["groupBy"] == "day"
        assert len(data["points"]) == 6
        assert data["total"] == pytest.approx(1855.37)

    def test_bad_grouping_is_422(self, demo_client: TestClient, admin_headers) -> None:
        resp = demo_client.get("/v1/analytics/revenue?groupBy=hour", headers=admin_headers)
        _assert_error(resp, 422, "validation_error")
