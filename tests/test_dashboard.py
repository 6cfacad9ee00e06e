"""
tests/test_dashboard.py -- Placeholder fallback in web/dashboard.py.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

from core.models import TIMEOUT_MESSAGE, Envelope
from web.dashboard import PLACEHOLDER_STATS, load_dashboard_stats


def _api(envelope: Envelope) -> MagicMock:
    api = MagicMock()
    api.analytics.get_dashboard_stats = AsyncMock(return_value=envelope)
    return api


class TestLoadDashboardStats:
    def test_live_stats(self) -> None:
        payload = {"totalUsers": 3, "totalOrders": 2, "totalRevenue": 99.5, "averageOrderValue": 49.75}
        stats, placeholder = asyncio.run(load_dashboard_stats(_api(Envelope.ok(payload))))
        assert placeholder is False
        assert stats.total_users == 3
        assert stats.recent_orders == []

    def test_failure_uses_placeholder(self) -> None:
        stats, placeholder = asyncio.run(load_dashboard_stats(_api(Envelope.fail(TIMEOUT_MESSAGE, TIMEOUT_MESSAGE))))
        assert placeholder is True
        assert stats is PLACEHOLDER_STATS

    def test_unexpected_shape_uses_placeholder(self) -> None:
        stats, placeholder = asyncio.run(load_dashboard_stats(_api(Envelope.ok({"users": "many"}))))
        assert placeholder is True
        assert stats.total_orders == 845

    def test_placeholder_figures(self) -> None:
        assert PLACEHOLDER_STATS.total_users == 1234
        assert PLACEHOLDER_STATS.total_revenue == 124500.0
        assert PLACEHOLDER_STATS.average_order_value == 147.34
