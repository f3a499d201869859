"""
Portfolio Service.

Creatives curate the portfolio shown on their public profile.  Every
write is checked against the actor's own creative profile; reads are
public.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.errors import Forbidden, NotAuthenticated, NotFound, ValidationFailed
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import UserRole
from brand_connect.models.profiles import CreativeProfile, PortfolioItem, PortfolioItemUpdate
from brand_connect.models.user import AppUser
from brand_connect.repositories.portfolio_repository import PortfolioRepository
from brand_connect.repositories.profile_repository import CreativeProfileRepository
from brand_connect.services.base_service import BaseService
from brand_connect.utils.audit import log_audit_event


class PortfolioService(BaseService):
    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        creative_repo: CreativeProfileRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._items = portfolio_repo
        self._creatives = creative_repo

    async def _own_profile(self, actor: Optional[AppUser]) -> CreativeProfile:
        if actor is None:
            raise NotAuthenticated("Login required.")
        if actor.role != UserRole.CREATIVE:
            raise Forbidden("Only creatives can manage a portfolio.")
        profile = await self._creatives.get_by_user_id(actor.id)
        if profile is None:
            raise NotFound("Creative profile not found.")
        return profile

    async def _own_item(self, actor: Optional[AppUser], item_id: str) -> PortfolioItem:
        profile = await self._own_profile(actor)
        item = await self._items.get_by_id(item_id)
        if item is None:
            raise NotFound(f"Portfolio item {item_id} not found.")
        if item.creative_id != profile.id:
            raise Forbidden("You can only change your own portfolio.")
        return item

    async def add_item(
        self,
        actor: Optional[AppUser],
        title: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
        image_url: Optional[str] = None,
        project_url: Optional[str] = None,
    ) -> PortfolioItem:
        """Add a piece of work to the actor's portfolio."""
        profile = await self._own_profile(actor)
        if not title or not title.strip():
            raise ValidationFailed("Portfolio title is required.")

        item = await self._items.create({
            "creative_id": profile.id,
            "title": title.strip(),
            "description": description,
            "category": category or profile.category,
            "image_url": image_url,
            "project_url": project_url,
        })
        log_audit_event(
            logger=self._logger,
            action="PORTFOLIO_CREATE",
            entity_type="PortfolioItem",
            entity_id=item.id,
            user_id=actor.id,
            details={"title": item.title},
        )
        return item

    async def update_item(
        self,
        actor: Optional[AppUser],
        item_id: str,
        changes: PortfolioItemUpdate,
    ) -> PortfolioItem:
        """Apply the fields set on *changes*.  An empty update returns the item as stored."""
        item = await self._own_item(actor, item_id)
        if not changes.model_fields_set:
            return item
        if "title" in changes.model_fields_set:
            title = (changes.title or "").strip()
            if not title:
                raise ValidationFailed("Portfolio title is required.")
            changes = changes.model_copy(update={"title": title})

        updated = await self._items.update(item_id, changes)
        log_audit_event(
            logger=self._logger,
            action="PORTFOLIO_UPDATE",
            entity_type="PortfolioItem",
            entity_id=item_id,
            user_id=actor.id,
            details={"fields": ",".join(sorted(changes.model_fields_set))},
        )
        return updated

    async def remove_item(self, actor: Optional[AppUser], item_id: str) -> None:
        await self._own_item(actor, item_id)
        await self._items.delete(item_id)
        log_audit_event(
            logger=self._logger,
            action="PORTFOLIO_DELETE",
            entity_type="PortfolioItem",
            entity_id=item_id,
            user_id=actor.id,
        )

    async def list_items(self, creative_id: str) -> list[PortfolioItem]:
        return await self._items.list_for_creative(creative_id)
