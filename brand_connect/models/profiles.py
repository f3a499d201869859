"""
Profile and Catalog Models.

Client and creative profiles, the services and portfolio items a
creative publishes, and the partial-update payloads accepted by
``SessionAuthority.update_profile`` and ``PortfolioService``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from brand_connect.models.enums import ApprovalStatus, AvailabilityStatus


class ClientProfile(BaseModel):
    """Client profile.  ``id`` equals the owning principal's id."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CreativeProfile(BaseModel):
    """Creative profile.  Exactly one per creative principal (``user_id``)."""

    id: str
    user_id: str
    title: Optional[str] = None
    category: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    hourly_rate: float = 50_000
    rating: float = 0.0
    reviews_count: int = 0
    completed_projects: int = 0
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    skills: list[str] = Field(default_factory=list)
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED


class CreativeService(BaseModel):
    """A bookable offering published by a creative."""

    id: str
    creative_id: str
    name: str
    description: Optional[str] = None
    price: float = Field(gt=0)
    duration: int = Field(default=60, gt=0)  # minutes
    category: Optional[str] = None
    active: bool = True
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PortfolioItem(BaseModel):
    """A piece of past work shown on a creative's profile."""

    id: str
    creative_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    project_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Partial-update payloads
# ---------------------------------------------------------------------------

class ClientProfileUpdate(BaseModel):
    """Fields a client may change on their own profile."""

    full_name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    avatar_url: Optional[str] = None


class CreativeProfileUpdate(BaseModel):
    """Fields a creative may change on their own profile.

    Approval fields are deliberately absent; they move only through
    ``ApprovalWorkflow``.
    """

    title: Optional[str] = None
    category: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    hourly_rate: Optional[float] = Field(default=None, gt=0)
    availability_status: Optional[AvailabilityStatus] = None
    skills: Optional[list[str]] = None


class PortfolioItemUpdate(BaseModel):
    """Editable portfolio fields.  Ownership never changes."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    project_url: Optional[str] = None


ProfileUpdate = ClientProfileUpdate | CreativeProfileUpdate
