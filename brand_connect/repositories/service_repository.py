"""
Creative Service Repository.

Data access for the ``services`` table: the bookable offerings a
creative publishes.
"""

from __future__ import annotations

from brand_connect.models.profiles import CreativeService
from brand_connect.repositories.base_repository import BaseRepository, utc_now
from brand_connect.store.base import Filters, OrderBy


class ServiceRepository(BaseRepository[CreativeService]):
    TABLE = "services"
    MODEL = CreativeService

    async def create(self, fields: dict[str, object]) -> CreativeService:
        fields = dict(fields)
        fields.setdefault("active", True)
        fields.setdefault("created_at", utc_now())
        return await self._insert(fields)

    async def set_active(self, service_id: str, active: bool) -> CreativeService:
        return await self._update(service_id, {"active": active})

    async def list_for_creative(self, creative_id: str, active_only: bool = True) -> list[CreativeService]:
        filters: Filters = {"creative_id": creative_id}
        if active_only:
            filters["active"] = True
        return await self._find(filters, order=OrderBy("created_at"))
