"""
Profile Repositories.

Client and creative profile data access.  Profiles may be created by a
database trigger at sign-up or lazily by the application; both paths
meet at the uniqueness constraint on the owning principal.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.models.enums import ApprovalStatus
from brand_connect.models.profiles import (
    ClientProfile,
    ClientProfileUpdate,
    CreativeProfile,
    CreativeProfileUpdate,
)
from brand_connect.repositories.base_repository import BaseRepository, utc_now
from brand_connect.store.base import Filters, OrderBy


class ClientProfileRepository(BaseRepository[ClientProfile]):
    """Data access for ``client_profiles``.  ``id`` is the principal id."""

    TABLE = "client_profiles"
    MODEL = ClientProfile

    async def create(self, profile: ClientProfile) -> ClientProfile:
        now = utc_now()
        fields = profile.model_dump(exclude_none=True)
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", now)
        return await self._insert(fields)

    async def update(self, profile_id: str, changes: ClientProfileUpdate) -> ClientProfile:
        fields: dict[str, object] = changes.model_dump(exclude_unset=True)
        fields["updated_at"] = utc_now()
        return await self._update(profile_id, fields)

    async def list_profiles(self) -> list[ClientProfile]:
        """Every client profile, newest first."""
        return await self._find(order=OrderBy("created_at", descending=True))


class CreativeProfileRepository(BaseRepository[CreativeProfile]):
    """Data access for ``creative_profiles``.

    **No approval setter without an expected status.**  Approval moves
    only through :meth:`set_approval`, which is a conditional update.
    """

    TABLE = "creative_profiles"
    MODEL = CreativeProfile

    async def get_by_user_id(self, user_id: str) -> Optional[CreativeProfile]:
        return await self._find_one({"user_id": user_id})

    async def create(self, fields: dict[str, object]) -> CreativeProfile:
        now = utc_now()
        fields = dict(fields)
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", now)
        return await self._insert(fields)

    async def update(self, profile_id: str, changes: CreativeProfileUpdate) -> CreativeProfile:
        fields: dict[str, object] = changes.model_dump(exclude_unset=True)
        fields["updated_at"] = utc_now()
        return await self._update(profile_id, fields)

    async def set_approval(
        self,
        profile_id: str,
        status: ApprovalStatus,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> CreativeProfile:
        """Move a pending profile to *status*.  Raises ``StaleState`` on a lost race."""
        now = utc_now()
        fields: dict[str, object] = {
            "approval_status": status,
            "approved_by": actor_id,
            "approved_at": now,
            "updated_at": now,
        }
        if reason is not None:
            fields["rejection_reason"] = reason
        return await self._update(
            profile_id,
            fields,
            expected={"approval_status": ApprovalStatus.PENDING},
        )

    async def set_rating(self, profile_id: str, rating: float, reviews_count: int) -> CreativeProfile:
        return await self._update(profile_id, {
            "rating": rating,
            "reviews_count": reviews_count,
            "updated_at": utc_now(),
        })

    async def set_completed_projects(
        self,
        profile_id: str,
        count: int,
        expected: int,
    ) -> CreativeProfile:
        """Write *count*; ``StaleState`` if the stored counter is no longer *expected*."""
        return await self._update(
            profile_id,
            {"completed_projects": count, "updated_at": utc_now()},
            expected={"completed_projects": expected},
        )

    async def list_profiles(
        self,
        approval_status: Optional[ApprovalStatus] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[CreativeProfile]:
        """List profiles, highest rated first."""
        filters: Filters = {}
        if approval_status is not None:
            filters["approval_status"] = str(approval_status)
        if category is not None:
            filters["category"] = category
        return await self._find(
            filters,
            order=OrderBy("rating", descending=True),
            limit=limit,
        )
