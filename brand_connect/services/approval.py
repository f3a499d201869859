"""
Creative Approval Workflow.

Gatekeeps creative visibility and bookability.  Profiles move
``pending -> approved`` or ``pending -> rejected`` and never leave a
terminal state.  Only admins may decide, and the decision is written
with a conditional update so two admins racing on the same profile
cannot both win.

The same admins browse the user directory across client and creative
profiles.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.errors import Forbidden, InvalidTransition, NotAuthenticated, NotFound
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import (
    ApprovalStatus,
    AvailabilityStatus,
    NotificationType,
    ResolutionSource,
    UserRole,
)
from brand_connect.models.profiles import ClientProfile, CreativeProfile
from brand_connect.models.user import AppUser
from brand_connect.repositories.profile_repository import (
    ClientProfileRepository,
    CreativeProfileRepository,
)
from brand_connect.services.base_service import BaseService
from brand_connect.services.notifications import NotificationDispatcher
from brand_connect.utils.audit import log_audit_event

_DECISION_MESSAGES: dict[ApprovalStatus, tuple[str, str]] = {
    ApprovalStatus.APPROVED: (
        "Profile approved",
        "Your creative profile has been approved and is now visible to clients.",
    ),
    ApprovalStatus.REJECTED: (
        "Profile not approved",
        "Your creative profile was not approved.",
    ),
}


def is_bookable(profile: CreativeProfile) -> bool:
    """Approved and currently taking work."""
    return (
        profile.approval_status == ApprovalStatus.APPROVED
        and profile.availability_status == AvailabilityStatus.AVAILABLE
    )


def _client_user(profile: ClientProfile) -> AppUser:
    return AppUser(
        id=profile.id,
        email=profile.email or "",
        name=profile.full_name or "Client User",
        phone=profile.phone,
        location=profile.location,
        role=UserRole.CLIENT,
        verified=True,
        approved=True,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
        company_name=profile.company_name,
        industry=profile.industry,
        avatar_url=profile.avatar_url,
        source=ResolutionSource.CLIENT_PROFILE,
    )


def _creative_user(profile: CreativeProfile) -> AppUser:
    return AppUser(
        id=profile.user_id,
        email=profile.email or "",
        name=profile.title or "Creative User",
        phone=profile.phone,
        location=profile.location,
        role=UserRole.CREATIVE,
        verified=True,
        approved=profile.is_approved,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
        source=ResolutionSource.CREATIVE_PROFILE,
    )


class ApprovalWorkflow(BaseService):
    """
    Service handling creative profile approval decisions and the
    approval-aware creative listings.

    Dependencies are injected via __init__.
    """

    def __init__(
        self,
        creative_repo: CreativeProfileRepository,
        client_repo: ClientProfileRepository,
        notifications: NotificationDispatcher,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._creative_repo = creative_repo
        self._client_repo = client_repo
        self._notifications = notifications

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def approve(self, profile_id: str, actor: Optional[AppUser]) -> CreativeProfile:
        """Approve a pending creative profile.

        Raises:
            NotAuthenticated: No resolved actor.
            Forbidden: Actor is not an admin.
            NotFound: No such profile.
            InvalidTransition: Profile is not pending.
            StaleState: Another decision landed first.
        """
        return await self._decide(profile_id, actor, ApprovalStatus.APPROVED)

    async def reject(
        self,
        profile_id: str,
        actor: Optional[AppUser],
        reason: Optional[str] = None,
    ) -> CreativeProfile:
        """Reject a pending creative profile.  Same errors as :meth:`approve`."""
        return await self._decide(profile_id, actor, ApprovalStatus.REJECTED, reason)

    async def _decide(
        self,
        profile_id: str,
        actor: Optional[AppUser],
        target: ApprovalStatus,
        reason: Optional[str] = None,
    ) -> CreativeProfile:
        verb = "approve" if target == ApprovalStatus.APPROVED else "reject"

        # --- RBAC CHECK: admins only ---
        self._require_admin(actor, f"Only admins can {verb} creative profiles.")

        profile = await self._creative_repo.get_by_id(profile_id)
        if profile is None:
            raise NotFound(f"Creative profile {profile_id} not found.")

        # --- STATE CONSISTENCY CHECK ---
        if profile.approval_status != ApprovalStatus.PENDING:
            raise InvalidTransition(
                f"Cannot {verb} profile. Current status is "
                f"'{profile.approval_status}'. Only 'pending' profiles can be decided."
            )

        updated = await self._creative_repo.set_approval(profile_id, target, actor.id, reason)

        log_audit_event(
            logger=self._logger,
            action=verb.upper(),
            entity_type="CreativeProfile",
            entity_id=profile_id,
            user_id=actor.id,
            details={
                "decided_by": actor.name,
                "from_status": str(profile.approval_status),
                "to_status": str(target),
                "reason": reason,
            },
        )

        title, message = _DECISION_MESSAGES[target]
        if reason:
            message = f"{message} Reason: {reason}"
        await self._notifications.notify_safely(
            profile.user_id,
            NotificationType.PROFILE_APPROVAL,
            title,
            message,
            {"profile_id": profile_id, "status": str(target)},
        )
        return updated

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_approved_creatives(
        self,
        category: Optional[str] = None,
        min_rating: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[CreativeProfile]:
        """Public listing: approved creatives only, highest rated first."""
        profiles = await self._creative_repo.list_profiles(
            approval_status=ApprovalStatus.APPROVED,
            category=category,
            limit=limit if min_rating is None else None,
        )
        if min_rating is not None:
            profiles = [profile for profile in profiles if profile.rating >= min_rating]
            if limit is not None:
                profiles = profiles[:limit]
        return profiles

    async def list_creatives(
        self,
        actor: Optional[AppUser],
        approval_status: Optional[ApprovalStatus] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[CreativeProfile]:
        """Admin listing across every approval status."""
        self._require_admin(actor, "Only admins can list unapproved creatives.")
        return await self._creative_repo.list_profiles(
            approval_status=approval_status,
            category=category,
            limit=limit,
        )

    async def list_pending(self, actor: Optional[AppUser]) -> list[CreativeProfile]:
        """The admin approval queue."""
        return await self.list_creatives(actor, approval_status=ApprovalStatus.PENDING)

    async def list_users(
        self,
        actor: Optional[AppUser],
        role: Optional[UserRole] = None,
        approval_status: Optional[ApprovalStatus] = None,
        search: Optional[str] = None,
    ) -> list[AppUser]:
        """Admin directory of every client and creative.

        Clients come first, then creatives.  *approval_status* narrows
        the result to creatives in that status; clients have none.
        *search* matches name or email, case-insensitively.
        """
        self._require_admin(actor, "Only admins can list users.")

        users: list[AppUser] = []
        if role in (None, UserRole.CLIENT) and approval_status is None:
            users.extend(_client_user(profile) for profile in await self._client_repo.list_profiles())
        if role in (None, UserRole.CREATIVE):
            profiles = await self._creative_repo.list_profiles(approval_status=approval_status)
            users.extend(_creative_user(profile) for profile in profiles)

        if search:
            needle = search.strip().lower()
            users = [
                user for user in users
                if needle in user.name.lower() or needle in user.email.lower()
            ]
        return users

    @staticmethod
    def _require_admin(actor: Optional[AppUser], message: str) -> None:
        if actor is None:
            raise NotAuthenticated("Login required.")
        if actor.role != UserRole.ADMIN:
            raise Forbidden(message)
