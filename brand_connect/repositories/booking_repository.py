"""
Booking Repository.

Bookings are never deleted; status changes go through a single
conditional update keyed on the expected current status.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.models.booking import Booking
from brand_connect.models.enums import BookingStatus, ChangeType
from brand_connect.repositories.base_repository import BaseRepository, utc_now
from brand_connect.store.base import ChangeCallback, Filters, OrderBy, Subscription


class BookingRepository(BaseRepository[Booking]):
    """Data access layer for ``bookings``.

    **No ``delete()`` method.**  A booking that should not happen is
    cancelled, which keeps its conversation and notifications anchored.
    """

    TABLE = "bookings"
    MODEL = Booking

    async def create(self, fields: dict[str, object]) -> Booking:
        now = utc_now()
        fields = dict(fields)
        fields["status"] = BookingStatus.PENDING
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", now)
        return await self._insert(fields)

    async def update_status(
        self,
        booking_id: str,
        target: BookingStatus,
        expected: BookingStatus,
    ) -> Booking:
        """Conditional status write.  ``StaleState`` when *expected* no longer holds."""
        return await self._update(
            booking_id,
            {"status": target, "updated_at": utc_now()},
            expected={"status": expected},
        )

    async def list_for(
        self,
        client_id: Optional[str] = None,
        creative_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        """Newest first.  At least one of *client_id* / *creative_id* is expected."""
        filters: Filters = {}
        if client_id is not None:
            filters["client_id"] = client_id
        if creative_id is not None:
            filters["creative_id"] = creative_id
        if status is not None:
            filters["status"] = str(status)
        return await self._find(filters, order=OrderBy("created_at", descending=True))

    async def subscribe_for_client(self, client_id: str, on_change: ChangeCallback) -> Subscription:
        return await self._store.subscribe(
            self.TABLE,
            {"client_id": client_id},
            on_change,
            change_type=ChangeType.UPDATE,
        )
