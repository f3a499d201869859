"""
Auth Principal Models.

The raw identity handed back by the auth provider, before resolution
into an ``AppUser``.  ``metadata`` is user-controlled at sign-up and is
only trusted for the admin flag and display fallbacks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

MetadataValue = object


class Principal(BaseModel):
    """Authenticated identity as reported by the auth provider."""

    id: str
    email: Optional[str] = None
    email_verified_at: Optional[datetime] = None
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    def meta(self, key: str) -> Optional[str]:
        """Return a non-empty metadata string, or ``None``."""
        value = self.metadata.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class AuthSession(BaseModel):
    """Tokens plus the principal they were issued to."""

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    principal: Principal

    model_config = {"from_attributes": True}
