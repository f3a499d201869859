"""
Notification and Review Repositories.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.models.enums import NotificationType
from brand_connect.models.messaging import Notification, PayloadValue, Review
from brand_connect.repositories.base_repository import BaseRepository, utc_now
from brand_connect.store.base import OrderBy


class NotificationRepository(BaseRepository[Notification]):
    TABLE = "notifications"
    MODEL = Notification

    async def create(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[dict[str, PayloadValue]] = None,
    ) -> Notification:
        return await self._insert({
            "user_id": user_id,
            "type": notification_type,
            "title": title,
            "message": message,
            "data": data or {},
            "created_at": utc_now(),
        })

    async def list_for_user(self, user_id: str, limit: int) -> list[Notification]:
        return await self._find(
            {"user_id": user_id},
            order=OrderBy("created_at", descending=True),
            limit=limit,
        )

    async def mark_read(self, notification_id: str) -> Notification:
        return await self._update(
            notification_id,
            {"read_at": utc_now()},
            expected={"read_at": None},
        )


class ReviewRepository(BaseRepository[Review]):
    TABLE = "reviews"
    MODEL = Review

    async def get_by_booking(self, booking_id: str) -> Optional[Review]:
        return await self._find_one({"booking_id": booking_id})

    async def create(self, fields: dict[str, object]) -> Review:
        fields = dict(fields)
        fields.setdefault("created_at", utc_now())
        return await self._insert(fields)

    async def list_for_creative(self, creative_id: str) -> list[Review]:
        return await self._find(
            {"creative_id": creative_id},
            order=OrderBy("created_at", descending=True),
        )
