"""
Application User Model.

Derived from a ``Principal`` plus at most one profile record by the
identity resolver.  Never persisted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from brand_connect.models.enums import ResolutionSource, UserRole


class AppUser(BaseModel):
    """The typed user the rest of the core works with.

    ``approved`` is always ``True`` for clients and admins; for creatives
    it mirrors the profile's approval status.  ``source`` names the
    resolution branch that produced this value.
    """

    id: str
    email: str
    name: str
    phone: Optional[str] = None
    location: Optional[str] = None
    role: UserRole
    verified: bool = False
    approved: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    avatar_url: Optional[str] = None
    source: ResolutionSource

    model_config = {"from_attributes": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

    @property
    def is_profile_complete(self) -> bool:
        """Name, email and phone are filled in."""
        return bool(self.name and self.email and self.phone)
