"""
services/users.py -- /users endpoints: list, read, create, update, delete, export.
"""

from __future__ import annotations

from typing import Optional

from api.models import ExportFormatEnum, UserCreateData, UserUpdateData
from core.models import Envelope
from services.base import ResourceService, unsupported_choice


class UserService(ResourceService):
    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Envelope:
        """List users. data is a paginated collection of user objects."""
        params = {"page": page, "limit": limit, "search": search, "role": role, "status": status}
        return await self._get("/users", params)

    async def get_by_id(self, user_id: str) -> Envelope:
        return await self._get(f"/users/{user_id}")

    async def create(self, data: UserCreateData | dict) -> Envelope:
        return await self._post("/users", data)

    async def update(self, user_id: str, data: UserUpdateData | dict) -> Envelope:
        return await self._put(f"/users/{user_id}", data)

    async def delete(self, user_id: str) -> Envelope:
        return await self._delete(f"/users/{user_id}")

    async def export(self, format: str = "csv") -> Envelope:
        rejected = unsupported_choice("export format", format, ExportFormatEnum)
        if rejected is not None:
            return rejected
        return await self._get("/users/export", {"format": ExportFormatEnum(format).value})
