"""
web/dashboard.py -- Landing dashboard data with a placeholder fallback.

The dashboard must always render. When /analytics/dashboard cannot be read
(backend down, timeout, unexpected shape) the fixed placeholder metrics are
shown instead and the caller is told so it can label them.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from api.models import DashboardStats
from services.client import ApiClient

logger = logging.getLogger("crmconsole.dashboard")

PLACEHOLDER_STATS = DashboardStats(
    total_users=1234,
    total_orders=845,
    total_revenue=124500.0,
    average_order_value=147.34,
)


async def load_dashboard_stats(api: ApiClient) -> tuple[DashboardStats, bool]:
    """Return (stats, is_placeholder)."""
    envelope = await api.analytics.get_dashboard_stats()
    if not envelope.success:
        logger.info("Dashboard stats unavailable (%s); showing placeholder data", envelope.error)
        return PLACEHOLDER_STATS, True
    try:
        return DashboardStats.model_validate(envelope.data), False
    except ValidationError as exc:
        logger.warning("Dashboard stats payload rejected: %s", exc.error_count())
        return PLACEHOLDER_STATS, True
