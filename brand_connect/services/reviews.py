"""
Review Service.

A client may review a booking once it is completed.  Each submission
recomputes the creative's average rating and review count.
"""

from __future__ import annotations

from typing import Optional

from brand_connect.errors import (
    DuplicateEntity,
    Forbidden,
    InvalidTransition,
    MarketplaceError,
    NotAuthenticated,
    NotFound,
    ValidationFailed,
)
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import BookingStatus, NotificationType
from brand_connect.models.messaging import Review
from brand_connect.models.user import AppUser
from brand_connect.repositories.booking_repository import BookingRepository
from brand_connect.repositories.notification_repository import ReviewRepository
from brand_connect.repositories.profile_repository import CreativeProfileRepository
from brand_connect.services.base_service import BaseService
from brand_connect.services.notifications import NotificationDispatcher
from brand_connect.utils.audit import log_audit_event


class ReviewService(BaseService):
    def __init__(
        self,
        review_repo: ReviewRepository,
        booking_repo: BookingRepository,
        creative_repo: CreativeProfileRepository,
        notifications: NotificationDispatcher,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._reviews = review_repo
        self._bookings = booking_repo
        self._creatives = creative_repo
        self._notifications = notifications

    async def submit_review(
        self,
        actor: Optional[AppUser],
        booking_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        """Record the client's review of a completed booking.

        Raises:
            NotAuthenticated: No resolved actor.
            ValidationFailed: Rating outside 1..5.
            NotFound: No such booking.
            Forbidden: Actor is not the booking's client.
            InvalidTransition: Booking is not completed.
            DuplicateEntity: The booking already has a review.
        """
        if actor is None:
            raise NotAuthenticated("Login required.")
        if not 1 <= rating <= 5:
            raise ValidationFailed("Rating must be between 1 and 5.")

        booking = await self._bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found.")
        if booking.client_id != actor.id:
            raise Forbidden("Only the booking's client can review it.")
        if booking.status != BookingStatus.COMPLETED:
            raise InvalidTransition("Only completed bookings can be reviewed.")
        if await self._reviews.get_by_booking(booking_id) is not None:
            raise DuplicateEntity("This booking has already been reviewed.")

        review = await self._reviews.create({
            "booking_id": booking_id,
            "client_id": actor.id,
            "creative_id": booking.creative_id,
            "rating": rating,
            "comment": comment,
        })

        log_audit_event(
            logger=self._logger,
            action="REVIEW_CREATE",
            entity_type="Review",
            entity_id=review.id,
            user_id=actor.id,
            details={"booking_id": booking_id, "rating": rating},
        )

        await self._refresh_rating(booking.creative_id)
        return review

    async def _refresh_rating(self, creative_id: str) -> None:
        try:
            reviews = await self._reviews.list_for_creative(creative_id)
            average = round(sum(r.rating for r in reviews) / len(reviews), 2) if reviews else 0.0
            profile = await self._creatives.set_rating(creative_id, average, len(reviews))
        except MarketplaceError as exc:
            self._logger.error("Rating recompute for %s failed: %s", creative_id, exc.message)
            return

        await self._notifications.notify_safely(
            profile.user_id,
            NotificationType.NEW_REVIEW,
            "New review",
            f"You received a new review. Your rating is now {average}.",
            {"creative_id": creative_id, "rating": average},
        )

    async def list_reviews(self, creative_id: str) -> list[Review]:
        return await self._reviews.list_for_creative(creative_id)
