"""
Portfolio Repository.

Data access for ``portfolio_items``: past work a creative shows on
their profile.
"""

from __future__ import annotations

from brand_connect.models.profiles import PortfolioItem, PortfolioItemUpdate
from brand_connect.repositories.base_repository import BaseRepository, utc_now
from brand_connect.store.base import OrderBy


class PortfolioRepository(BaseRepository[PortfolioItem]):
    TABLE = "portfolio_items"
    MODEL = PortfolioItem

    async def create(self, fields: dict[str, object]) -> PortfolioItem:
        now = utc_now()
        fields = dict(fields)
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", now)
        return await self._insert(fields)

    async def update(self, item_id: str, changes: PortfolioItemUpdate) -> PortfolioItem:
        fields: dict[str, object] = changes.model_dump(exclude_unset=True)
        fields["updated_at"] = utc_now()
        return await self._update(item_id, fields)

    async def delete(self, item_id: str) -> None:
        await self._store.delete(self.TABLE, item_id)

    async def list_for_creative(self, creative_id: str) -> list[PortfolioItem]:
        """Newest first."""
        return await self._find(
            {"creative_id": creative_id},
            order=OrderBy("created_at", descending=True),
        )
