"""
Catalog Service.

Creatives manage the services they offer.  Ownership is checked against
the actor's own creative profile.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.errors import Forbidden, NotAuthenticated, NotFound, ValidationFailed
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import UserRole
from brand_connect.models.profiles import CreativeProfile, CreativeService
from brand_connect.models.user import AppUser
from brand_connect.repositories.profile_repository import CreativeProfileRepository
from brand_connect.repositories.service_repository import ServiceRepository
from brand_connect.services.base_service import BaseService
from brand_connect.utils.audit import log_audit_event


class CatalogService(BaseService):
    def __init__(
        self,
        service_repo: ServiceRepository,
        creative_repo: CreativeProfileRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._services = service_repo
        self._creatives = creative_repo

    async def _own_profile(self, actor: Optional[AppUser]) -> CreativeProfile:
        if actor is None:
            raise NotAuthenticated("Login required.")
        if actor.role != UserRole.CREATIVE:
            raise Forbidden("Only creatives can manage services.")
        profile = await self._creatives.get_by_user_id(actor.id)
        if profile is None:
            raise NotFound("Creative profile not found.")
        return profile

    async def add_service(
        self,
        actor: Optional[AppUser],
        name: str,
        price: float,
        duration: int = 60,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> CreativeService:
        """Publish a new active service on the actor's profile."""
        profile = await self._own_profile(actor)
        if not name or not name.strip():
            raise ValidationFailed("Service name is required.")
        if price <= 0:
            raise ValidationFailed("Service price must be positive.")
        if duration <= 0:
            raise ValidationFailed("Service duration must be positive.")

        service = await self._services.create({
            "creative_id": profile.id,
            "name": name.strip(),
            "description": description,
            "price": price,
            "duration": duration,
            "category": category or profile.category,
        })
        log_audit_event(
            logger=self._logger,
            action="SERVICE_CREATE",
            entity_type="Service",
            entity_id=service.id,
            user_id=actor.id,
            details={"name": service.name, "price": service.price},
        )
        return service

    async def set_service_active(
        self,
        actor: Optional[AppUser],
        service_id: str,
        active: bool,
    ) -> CreativeService:
        profile = await self._own_profile(actor)
        service = await self._services.get_by_id(service_id)
        if service is None:
            raise NotFound(f"Service {service_id} not found.")
        if service.creative_id != profile.id:
            raise Forbidden("You can only change your own services.")
        if service.active == active:
            return service
        return await self._services.set_active(service_id, active)

    async def list_services(self, creative_id: str, active_only: bool = True) -> list[CreativeService]:
        return await self._services.list_for_creative(creative_id, active_only=active_only)
