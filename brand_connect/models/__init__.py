"""
Data Models Package.

Re-exports the Pydantic models for short imports:
    from brand_connect.models import AppUser, Booking, CreativeProfile
    from brand_connect.models import UserRole, BookingStatus, ApprovalStatus

``ServiceResult`` lives in ``brand_connect.models.service_models`` and is
imported from there.
"""

from brand_connect.models.enums import (
    ApprovalStatus,
    AuthEvent,
    AvailabilityStatus,
    BookingStatus,
    ChangeType,
    ConversationStatus,
    ErrorCode,
    MessageType,
    NotificationType,
    ResolutionSource,
    UserRole,
)
from brand_connect.models.principal import AuthSession, Principal
from brand_connect.models.user import AppUser
from brand_connect.models.profiles import (
    ClientProfile,
    ClientProfileUpdate,
    CreativeProfile,
    CreativeProfileUpdate,
    CreativeService,
    PortfolioItem,
    PortfolioItemUpdate,
)
from brand_connect.models.booking import Booking, BookingRequest
from brand_connect.models.messaging import Conversation, Message, Notification, Review

__all__ = [
    "ApprovalStatus",
    "AuthEvent",
    "AvailabilityStatus",
    "BookingStatus",
    "ChangeType",
    "ConversationStatus",
    "ErrorCode",
    "MessageType",
    "NotificationType",
    "ResolutionSource",
    "UserRole",
    "AuthSession",
    "Principal",
    "AppUser",
    "ClientProfile",
    "ClientProfileUpdate",
    "CreativeProfile",
    "CreativeProfileUpdate",
    "CreativeService",
    "PortfolioItem",
    "PortfolioItemUpdate",
    "Booking",
    "BookingRequest",
    "Conversation",
    "Message",
    "Notification",
    "Review",
]
