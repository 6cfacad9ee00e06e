"""
services/base.py -- Shared plumbing for the typed resource wrappers.

Each wrapper is a thin layer over RequestGateway.request(): it picks the
endpoint, method, body and query parameters and returns the gateway's
Envelope untouched. No wrapper retries, caches, or raises: an argument
outside its allowed set comes back as a failed Envelope before any call.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from api.models import CamelModel
from core.gateway import RequestGateway
from core.models import Envelope, PaginatedCollection, QueryParams

Payload = Union[CamelModel, dict[str, Any]]


def to_wire(payload: Payload) -> dict[str, Any]:
    """Serialize a contract model (or pass through an already-built dict)."""
    if isinstance(payload, CamelModel):
        return payload.to_wire()
    return dict(payload)


def parse_page(envelope: Envelope, item_model: Optional[type[CamelModel]] = None) -> Optional[PaginatedCollection]:
    """Turn a successful list envelope into a PaginatedCollection.

    Returns None for a failed envelope. Items are validated into item_model
    when one is given, otherwise kept as plain dicts.
    """
    if not envelope.success or envelope.data is None:
        return None
    factory = item_model.model_validate if item_model is not None else None
    return PaginatedCollection.from_payload(envelope.data, factory)


def unsupported_choice(name: str, value: object, choices: type[Enum]) -> Optional[Envelope]:
    """Failed Envelope when value is not one of the enum's values, else None."""
    allowed = [member.value for member in choices]
    if value in allowed:
        return None
    return Envelope.fail("invalid_argument", f"Unsupported {name} {value!r}; expected one of: {', '.join(allowed)}.")


class ResourceService:
    def __init__(self, gateway: RequestGateway) -> None:
        self._gateway = gateway

    async def _get(self, endpoint: str, params: Optional[QueryParams] = None) -> Envelope:
        return await self._gateway.request(endpoint, "GET", params=params)

    async def _post(self, endpoint: str, payload: Optional[Payload] = None) -> Envelope:
        body = to_wire(payload) if payload is not None else None
        return await self._gateway.request(endpoint, "POST", body)

    async def _put(self, endpoint: str, payload: Payload) -> Envelope:
        return await self._gateway.request(endpoint, "PUT", to_wire(payload))

    async def _delete(self, endpoint: str) -> Envelope:
        return await self._gateway.request(endpoint, "DELETE")
