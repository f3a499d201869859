"""
Repository Layer Package.

Typed data access over the ``RecordStore`` contract.  Services never
touch the store directly; rows are parsed into models here.

Usage:
    from brand_connect.repositories import BookingRepository, CreativeProfileRepository
"""

from brand_connect.repositories.base_repository import BaseRepository
from brand_connect.repositories.booking_repository import BookingRepository
from brand_connect.repositories.conversation_repository import (
    ConversationRepository,
    MessageRepository,
)
from brand_connect.repositories.notification_repository import (
    NotificationRepository,
    ReviewRepository,
)
from brand_connect.repositories.portfolio_repository import PortfolioRepository
from brand_connect.repositories.profile_repository import (
    ClientProfileRepository,
    CreativeProfileRepository,
)
from brand_connect.repositories.service_repository import ServiceRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ClientProfileRepository",
    "ConversationRepository",
    "CreativeProfileRepository",
    "MessageRepository",
    "NotificationRepository",
    "PortfolioRepository",
    "ReviewRepository",
    "ServiceRepository",
]
