"""
Just-in-Time Profile Provisioning Service.

Guarantees that every client or creative principal ends up with exactly
one profile row, whether the database trigger created it at sign-up or
the application does so lazily.

Sync strategy:
    - Check first, create only if absent.
    - A uniqueness violation on insert means a trigger (or a concurrent
      call) won the race: re-fetch and return the existing row.
    - Concurrent calls for the same principal within this process are
      serialised by a per-principal lock.
    - Admin principals are never provisioned.
"""

from __future__ import annotations

from typing import Optional, Union

from brand_connect.config import AppConfig
from brand_connect.errors import DuplicateEntity
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import (
    ApprovalStatus,
    AvailabilityStatus,
    UserRole,
)
from brand_connect.models.principal import Principal
from brand_connect.models.profiles import ClientProfile, CreativeProfile
from brand_connect.repositories.profile_repository import (
    ClientProfileRepository,
    CreativeProfileRepository,
)
from brand_connect.services.base_service import BaseService
from brand_connect.utils.audit import log_audit_event
from brand_connect.utils.locks import KeyedLock

Profile = Union[ClientProfile, CreativeProfile]


def requested_role(principal: Principal) -> UserRole:
    """Role the principal asked for at sign-up, restricted to client/creative."""
    raw = principal.meta("user_type") or principal.meta("role")
    if raw == UserRole.CREATIVE:
        return UserRole.CREATIVE
    return UserRole.CLIENT


class ProfileProvisioningService(BaseService):
    """
    Creates missing client / creative profiles for authenticated principals.

    Called once after registration (following the trigger wait) and on
    every successful login so a profile lost to a failed trigger is
    healed on the next sign-in.
    """

    def __init__(
        self,
        client_repo: ClientProfileRepository,
        creative_repo: CreativeProfileRepository,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._client_repo = client_repo
        self._creative_repo = creative_repo
        self._config = config
        self._locks = KeyedLock()

    async def ensure_profile(self, principal: Principal) -> Optional[Profile]:
        """Provision whatever profile the principal's metadata asks for."""
        if principal.meta("role") == UserRole.ADMIN:
            return None
        if requested_role(principal) == UserRole.CREATIVE:
            return await self.ensure_creative_profile(principal)
        return await self.ensure_client_profile(principal)

    # ------------------------------------------------------------------
    # Creative
    # ------------------------------------------------------------------

    async def ensure_creative_profile(self, principal: Principal) -> CreativeProfile:
        """Return the principal's creative profile, creating it if absent.

        Raises:
            DuplicateEntity: Insert collided but the winning row cannot be read.
            UpstreamUnavailable: The store could not be reached.
        """
        async with self._locks.hold(f"creative:{principal.id}"):
            existing = await self._creative_repo.get_by_user_id(principal.id)
            if existing is not None:
                return existing

            profession = principal.meta("profession")
            location = principal.meta("location")
            bio = (
                f"Professional {profession} based in {location}"
                if profession and location
                else None
            )
            self._logger.info(
                "JIT Provisioning: Creating creative profile for %s", principal.id,
            )

            try:
                created = await self._creative_repo.create({
                    "user_id": principal.id,
                    "title": profession or self._config.DEFAULT_CREATIVE_TITLE,
                    "category": principal.meta("category") or self._config.DEFAULT_CREATIVE_CATEGORY,
                    "bio": bio,
                    "location": location,
                    "phone": principal.meta("phone"),
                    "email": principal.email,
                    "hourly_rate": self._config.DEFAULT_HOURLY_RATE,
                    "rating": 0,
                    "reviews_count": 0,
                    "completed_projects": 0,
                    "approval_status": ApprovalStatus.PENDING,
                    "availability_status": AvailabilityStatus.AVAILABLE,
                    "skills": [],
                })
            except DuplicateEntity as exc:
                self._logger.warning(
                    "JIT Provisioning: Creative profile race for %s. "
                    "Retrying lookup. Error: %s",
                    principal.id,
                    exc.message,
                )
                retried = await self._creative_repo.get_by_user_id(principal.id)
                if retried is None:
                    raise
                return retried

            log_audit_event(
                logger=self._logger,
                action="PROFILE_CREATE",
                entity_type="CreativeProfile",
                entity_id=created.id,
                user_id=principal.id,
                details={"title": created.title, "category": created.category},
            )
            return created

    # ------------------------------------------------------------------
    # Client
    # ------------------------------------------------------------------

    async def ensure_client_profile(self, principal: Principal) -> ClientProfile:
        """Return the principal's client profile, creating it if absent."""
        async with self._locks.hold(f"client:{principal.id}"):
            existing = await self._client_repo.get_by_id(principal.id)
            if existing is not None:
                return existing

            full_name = (
                principal.meta("full_name")
                or principal.meta("name")
                or (principal.email or "").split("@")[0]
                or None
            )
            try:
                created = await self._client_repo.create(ClientProfile(
                    id=principal.id,
                    email=principal.email,
                    full_name=full_name,
                    phone=principal.meta("phone"),
                    location=principal.meta("location"),
                ))
            except DuplicateEntity as exc:
                self._logger.warning(
                    "JIT Provisioning: Client profile race for %s. "
                    "Retrying lookup. Error: %s",
                    principal.id,
                    exc.message,
                )
                retried = await self._client_repo.get_by_id(principal.id)
                if retried is None:
                    raise
                return retried

            log_audit_event(
                logger=self._logger,
                action="PROFILE_CREATE",
                entity_type="ClientProfile",
                entity_id=created.id,
                user_id=principal.id,
                details={"email": created.email},
            )
            return created
