"""
Notification Dispatcher.

Writes in-app notifications.  Used as a side effect by approval, booking
and review flows; a notification that still fails after the retry policy
is logged and dropped, never rolled back into the triggering write.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.errors import MarketplaceError, NotFound, StaleState
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import BookingStatus, NotificationType
from brand_connect.models.messaging import Notification, PayloadValue
from brand_connect.repositories.notification_repository import NotificationRepository
from brand_connect.services.base_service import BaseService
from brand_connect.utils.retry import RetryPolicy, retry_async

_BOOKING_STATUS_MESSAGES: dict[BookingStatus, str] = {
    BookingStatus.CONFIRMED: "Your booking has been confirmed",
    BookingStatus.IN_PROGRESS: "Your booking is now in progress",
    BookingStatus.COMPLETED: "Your booking has been completed",
    BookingStatus.CANCELLED: "Your booking has been cancelled",
}


def booking_status_message(status: BookingStatus) -> str:
    return _BOOKING_STATUS_MESSAGES.get(status, f"Booking status updated to {status}")


class NotificationDispatcher(BaseService):
    """Creates, lists and marks notifications."""

    def __init__(
        self,
        repo: NotificationRepository,
        logger: StructuredLogger,
        retry_policy: Optional[RetryPolicy] = None,
        page_size: int = 50,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._retry_policy = retry_policy or RetryPolicy()
        self._page_size = page_size

    async def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[dict[str, PayloadValue]] = None,
    ) -> Notification:
        """Write a notification, retrying transient store failures."""
        return await retry_async(
            lambda: self._repo.create(user_id, notification_type, title, message, data),
            policy=self._retry_policy,
        )

    async def notify_safely(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[dict[str, PayloadValue]] = None,
    ) -> Optional[Notification]:
        """Like :meth:`notify`, but a final failure is logged and ``None`` returned."""
        try:
            return await self.notify(user_id, notification_type, title, message, data)
        except (MarketplaceError, TimeoutError) as exc:
            self._logger.error(
                "Notification to %s failed after retries: %s",
                user_id,
                exc,
                extra={"event": "NOTIFY_FAILED", "notification_type": str(notification_type)},
            )
            return None

    async def list_for_user(self, user_id: str, limit: Optional[int] = None) -> list[Notification]:
        return await self._repo.list_for_user(user_id, limit or self._page_size)

    async def mark_read(self, notification_id: str, reader_id: str) -> Notification:
        """Stamp ``read_at`` once.  Re-marking returns the row unchanged.

        Raises:
            NotFound: No such notification, or it belongs to someone else.
        """
        notification = await self._repo.get_by_id(notification_id)
        if notification is None or notification.user_id != reader_id:
            raise NotFound(f"Notification {notification_id} not found")
        if notification.read_at is not None:
            return notification
        try:
            return await self._repo.mark_read(notification_id)
        except StaleState:
            # Marked read concurrently; the stored timestamp wins.
            refreshed = await self._repo.get_by_id(notification_id)
            if refreshed is None:
                raise NotFound(f"Notification {notification_id} not found")
            return refreshed
