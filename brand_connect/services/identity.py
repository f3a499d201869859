"""
Identity Resolver.

Turns a raw ``Principal`` into exactly one typed ``AppUser``.  Branches
are tried in a fixed priority order and the first match wins:

    1. admin flag in metadata
    2. client profile keyed by the principal id
    3. creative profile keyed by ``user_id``
    4. metadata fallback

A lookup that fails for any reason other than a stale session is logged
and treated as "profile absent" so resolution always completes.  A stale
session (the JWT subject no longer exists) forces a sign-out and yields
``None``.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import ValidationError

from brand_connect.errors import MarketplaceError, SessionInvalid
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import ResolutionSource, UserRole
from brand_connect.models.principal import Principal
from brand_connect.models.profiles import ClientProfile, CreativeProfile
from brand_connect.models.user import AppUser
from brand_connect.repositories.profile_repository import (
    ClientProfileRepository,
    CreativeProfileRepository,
)
from brand_connect.services.base_service import BaseService
from brand_connect.services.provisioning import requested_role
from brand_connect.store.base import AuthProvider

P = TypeVar("P")


class IdentityResolver(BaseService):
    """Deterministic principal -> ``AppUser`` resolution.

    Parameters
    ----------
    auth:
        Auth provider, used to read the current principal and to sign
        out a stale session.
    client_repo, creative_repo:
        Profile lookups for branches 2 and 3.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        auth: AuthProvider,
        client_repo: ClientProfileRepository,
        creative_repo: CreativeProfileRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._auth = auth
        self._client_repo = client_repo
        self._creative_repo = creative_repo

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve_current(self) -> Optional[AppUser]:
        """Resolve whoever the auth provider currently considers signed in.

        Raises:
            UpstreamUnavailable: The auth provider itself is unreachable.
        """
        try:
            principal = await self._auth.get_principal()
        except SessionInvalid as exc:
            await self._force_sign_out("current", exc)
            return None
        if principal is None:
            return None
        return await self.resolve(principal)

    async def resolve(self, principal: Optional[Principal]) -> Optional[AppUser]:
        """Resolve *principal* into an ``AppUser``; ``None`` when there is none."""
        if principal is None:
            return None

        try:
            if principal.meta("role") == UserRole.ADMIN:
                return self._from_admin_metadata(principal)

            client = await self._lookup(self._client_repo.get_by_id, principal.id, "client_profiles")
            if client is not None:
                return self._from_client_profile(principal, client)

            creative = await self._lookup(self._creative_repo.get_by_user_id, principal.id, "creative_profiles")
            if creative is not None:
                return self._from_creative_profile(principal, creative)

            return self._from_metadata(principal)
        except SessionInvalid as exc:
            await self._force_sign_out(principal.id, exc)
            return None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _lookup(
        self,
        fetch: Callable[[str], Awaitable[Optional[P]]],
        key: str,
        table: str,
    ) -> Optional[P]:
        try:
            return await fetch(key)
        except SessionInvalid:
            raise
        except (MarketplaceError, ValidationError) as exc:
            self._logger.warning(
                "Profile lookup in %s failed for %s; treating as absent: %s",
                table,
                key,
                exc,
                extra={"event": "IDENTITY_LOOKUP_FAILED"},
            )
            return None

    async def _force_sign_out(self, principal_id: str, cause: SessionInvalid) -> None:
        self._logger.warning(
            "Stale session for %s (%s). Signing out.",
            principal_id,
            cause.message,
            extra={"event": "SESSION_INVALID"},
        )
        try:
            await self._auth.sign_out()
        except MarketplaceError as exc:
            self._logger.warning("Sign-out after stale session failed: %s", exc.message)

    @staticmethod
    def _verified(principal: Principal) -> bool:
        return principal.email_verified_at is not None

    def _from_admin_metadata(self, principal: Principal) -> AppUser:
        return AppUser(
            id=principal.id,
            email=principal.email or "",
            name=principal.meta("full_name") or "Admin",
            phone=principal.meta("phone"),
            location=principal.meta("location"),
            role=UserRole.ADMIN,
            verified=True,
            approved=True,
            created_at=principal.created_at,
            updated_at=principal.updated_at,
            source=ResolutionSource.ADMIN_METADATA,
        )

    def _from_client_profile(self, principal: Principal, profile: ClientProfile) -> AppUser:
        return AppUser(
            id=principal.id,
            email=profile.email or principal.email or "",
            name=profile.full_name or "User",
            phone=profile.phone,
            location=profile.location,
            role=UserRole.CLIENT,
            verified=self._verified(principal),
            approved=True,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
            company_name=profile.company_name,
            industry=profile.industry,
            avatar_url=profile.avatar_url,
            source=ResolutionSource.CLIENT_PROFILE,
        )

    def _from_creative_profile(self, principal: Principal, profile: CreativeProfile) -> AppUser:
        return AppUser(
            id=principal.id,
            email=profile.email or principal.email or "",
            name=profile.title or "Creative",
            phone=profile.phone or principal.meta("phone"),
            location=profile.location or principal.meta("location"),
            role=UserRole.CREATIVE,
            verified=self._verified(principal),
            approved=profile.is_approved,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
            source=ResolutionSource.CREATIVE_PROFILE,
        )

    def _from_metadata(self, principal: Principal) -> AppUser:
        return AppUser(
            id=principal.id,
            email=principal.email or "",
            name=principal.meta("full_name") or principal.meta("name") or "User",
            phone=principal.meta("phone"),
            location=principal.meta("location"),
            role=requested_role(principal),
            verified=self._verified(principal),
            approved=True,
            created_at=principal.created_at,
            updated_at=principal.updated_at,
            source=ResolutionSource.METADATA_FALLBACK,
        )
