"""
services/products.py -- /products endpoints and the category list.
"""

from __future__ import annotations

from typing import Optional

from api.models import ProductCreateData, ProductUpdateData
from core.models import Envelope
from services.base import ResourceService


class ProductService(ResourceService):
    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> Envelope:
        params = {
            "page": page,
            "limit": limit,
            "search": search,
            "category": category,
            "minPrice": min_price,
            "maxPrice": max_price,
        }
        return await self._get("/products", params)

    async def get_by_id(self, product_id: str) -> Envelope:
        return await self._get(f"/products/{product_id}")

    async def create(self, data: ProductCreateData | dict) -> Envelope:
        return await self._post("/products", data)

    async def update(self, product_id: str, data: ProductUpdateData | dict) -> Envelope:
        return await self._put(f"/products/{product_id}", data)

    async def delete(self, product_id: str) -> Envelope:
        return await self._delete(f"/products/{product_id}")

    async def get_categories(self) -> Envelope:
        return await self._get("/products/categories")
