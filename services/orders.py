"""
services/orders.py -- /orders endpoints plus the per-user order listing.

from_ is the "from" query parameter (date lower bound); "from" is a keyword.
"""

from __future__ import annotations

from typing import Optional

from api.models import ExportFormatEnum, OrderCreateData, OrderUpdateData
from core.models import Envelope
from services.base import ResourceService, unsupported_choice


class OrderService(ResourceService):
    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
    ) -> Envelope:
        params = {"page": page, "limit": limit, "search": search, "status": status, "from": from_, "to": to}
        return await self._get("/orders", params)

    async def get_by_id(self, order_id: str) -> Envelope:
        return await self._get(f"/orders/{order_id}")

    async def create(self, data: OrderCreateData | dict) -> Envelope:
        return await self._post("/orders", data)

    async def update(self, order_id: str, data: OrderUpdateData | dict) -> Envelope:
        return await self._put(f"/orders/{order_id}", data)

    async def delete(self, order_id: str) -> Envelope:
        return await self._delete(f"/orders/{order_id}")

    async def get_by_user(self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> Envelope:
        return await self._get(f"/users/{user_id}/orders", {"page": page, "limit": limit})

    async def export(
        self,
        format: str = "csv",
        from_: Optional[str] = None,
        to: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Envelope:
        rejected = unsupported_choice("export format", format, ExportFormatEnum)
        if rejected is not None:
            return rejected
        params = {"format": ExportFormatEnum(format).value, "from": from_, "to": to, "status": status}
        return await self._get("/orders/export", params)
