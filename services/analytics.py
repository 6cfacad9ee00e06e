"""
services/analytics.py -- /analytics/* read-only reporting endpoints.
"""

from __future__ import annotations

from typing import Optional

from api.models import GroupByEnum
from core.models import Envelope
from services.base import ResourceService, unsupported_choice


class AnalyticsService(ResourceService):
    async def get_dashboard_stats(self) -> Envelope:
        return await self._get("/analytics/dashboard")

    async def get_user_stats(self, from_: Optional[str] = None, to: Optional[str] = None) -> Envelope:
        return await self._get("/analytics/users", {"from": from_, "to": to})

    async def get_order_stats(self, from_: Optional[str] = None, to: Optional[str] = None) -> Envelope:
        return await self._get("/analytics/orders", {"from": from_, "to": to})

    async def get_revenue_stats(
        self,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> Envelope:
        if group_by is not None:
            rejected = unsupported_choice("grouping", group_by, GroupByEnum)
            if rejected is not None:
                return rejected
            group_by = GroupByEnum(group_by).value
        return await self._get("/analytics/revenue", {"from": from_, "to": to, "groupBy": group_by})
