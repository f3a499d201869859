"""
Booking State Machine.

Owns booking creation and every status change.

Legal transitions::

    pending     -> confirmed | cancelled
    confirmed   -> in_progress | cancelled
    in_progress -> completed | cancelled

``completed`` and ``cancelled`` are terminal.  Only the creative party
may move a booking forward or cancel it before or after work starts;
either party may cancel a confirmed booking.  Each status write is a
single conditional update on the status the caller observed.

Side effects (conversation bootstrap on confirmation, counter-party
notification, completed-project counter) run after the write commits,
are retried with bounded backoff, and are logged if they still fail.
They never undo the status change.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Awaitable, Callable, Optional

from brand_connect.config import AppConfig
from brand_connect.errors import (
    Forbidden,
    InvalidTransition,
    MarketplaceError,
    NotAuthenticated,
    NotFound,
    StaleState,
    ValidationFailed,
)
from brand_connect.logger import StructuredLogger
from brand_connect.models.booking import Booking, BookingRequest
from brand_connect.models.enums import (
    ApprovalStatus,
    AvailabilityStatus,
    BookingStatus,
    NotificationType,
    UserRole,
)
from brand_connect.models.profiles import CreativeProfile
from brand_connect.models.user import AppUser
from brand_connect.repositories.booking_repository import BookingRepository
from brand_connect.repositories.profile_repository import CreativeProfileRepository
from brand_connect.repositories.service_repository import ServiceRepository
from brand_connect.services.base_service import BaseService
from brand_connect.services.conversations import ConversationCoordinator
from brand_connect.services.notifications import NotificationDispatcher, booking_status_message
from brand_connect.store.base import ChangeEvent, Subscription
from brand_connect.utils.audit import log_audit_event
from brand_connect.utils.retry import RetryPolicy, retry_async


_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Conditional-write attempts when recounting completed projects.
_COUNTER_SYNC_ATTEMPTS = 5

# Which party may drive each legal edge.
_CREATIVE_ONLY: frozenset[UserRole] = frozenset({UserRole.CREATIVE})
_EITHER_PARTY: frozenset[UserRole] = frozenset({UserRole.CLIENT, UserRole.CREATIVE})

_EDGE_ACTORS: dict[tuple[BookingStatus, BookingStatus], frozenset[UserRole]] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): _CREATIVE_ONLY,
    (BookingStatus.PENDING, BookingStatus.CANCELLED): _CREATIVE_ONLY,
    (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS): _CREATIVE_ONLY,
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): _EITHER_PARTY,
    (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED): _CREATIVE_ONLY,
    (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED): _CREATIVE_ONLY,
}


def allowed_transitions(status: BookingStatus) -> frozenset[BookingStatus]:
    return _TRANSITIONS[status]


def is_terminal(status: BookingStatus) -> bool:
    return not _TRANSITIONS[status]


def validate_transition(current: BookingStatus, target: BookingStatus) -> None:
    """Raise ``InvalidTransition`` unless ``current -> target`` is a legal edge."""
    if target not in _TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot move booking from '{current}' to '{target}'."
        )


class BookingStateMachine(BaseService):
    """Booking creation, transitions and their side effects."""

    def __init__(
        self,
        booking_repo: BookingRepository,
        creative_repo: CreativeProfileRepository,
        service_repo: ServiceRepository,
        conversations: ConversationCoordinator,
        notifications: NotificationDispatcher,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._bookings = booking_repo
        self._creatives = creative_repo
        self._services = service_repo
        self._conversations = conversations
        self._notifications = notifications
        self._config = config
        self._retry_policy = RetryPolicy.from_config(config)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(self, actor: Optional[AppUser], request: BookingRequest) -> Booking:
        """Create a pending booking for an approved, available creative.

        Raises:
            NotAuthenticated: No resolved actor.
            Forbidden: Actor is not a client, or the creative or service
                cannot be booked.
            NotFound: Creative or service does not exist.
            ValidationFailed: Booking date outside the allowed window.
        """
        if actor is None:
            raise NotAuthenticated("Login required to book a creative.")
        if actor.role != UserRole.CLIENT:
            raise Forbidden("Only clients can create bookings.")

        self._check_date_window(request.booking_date)

        creative = await self._creatives.get_by_id(request.creative_id)
        if creative is None:
            raise NotFound(f"Creative {request.creative_id} not found.")
        if creative.approval_status != ApprovalStatus.APPROVED:
            raise Forbidden("This creative is not approved for bookings yet.")
        if creative.availability_status != AvailabilityStatus.AVAILABLE:
            raise Forbidden("This creative is not currently available.")

        service = await self._services.get_by_id(request.service_id)
        if service is None:
            raise NotFound(f"Service {request.service_id} not found.")
        if service.creative_id != creative.id:
            raise Forbidden("Service does not belong to this creative.")
        if not service.active:
            raise Forbidden("This service is no longer offered.")

        booking = await self._bookings.create({
            "client_id": actor.id,
            "creative_id": creative.id,
            "service_id": service.id,
            "booking_date": request.booking_date,
            "start_time": request.start_time,
            "end_time": request.end_time,
            "total_amount": service.price,
            "notes": request.notes,
        })

        log_audit_event(
            logger=self._logger,
            action="BOOKING_CREATE",
            entity_type="Booking",
            entity_id=booking.id,
            user_id=actor.id,
            details={
                "creative_id": creative.id,
                "service_id": service.id,
                "total_amount": booking.total_amount,
            },
        )

        await self._side_effect(
            "notify creative of new request",
            lambda: self._notifications.notify(
                creative.user_id,
                NotificationType.BOOKING_REQUEST,
                "New booking request",
                f"{actor.name} requested {service.name} on {booking.booking_date.isoformat()}",
                {"booking_id": booking.id, "status": str(booking.status)},
            ),
        )
        return booking

    def _check_date_window(self, booking_date: date) -> None:
        today = date.today()
        latest = today + timedelta(days=self._config.BOOKING_ADVANCE_DAYS)
        if booking_date < today:
            raise ValidationFailed("Booking date cannot be in the past.")
        if booking_date > latest:
            raise ValidationFailed(
                f"Bookings can be made at most {self._config.BOOKING_ADVANCE_DAYS} days in advance."
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        booking_id: str,
        target: BookingStatus,
        actor: Optional[AppUser],
    ) -> Booking:
        """Move a booking to *target*.

        Checks run in this order: actor present, booking exists, actor is
        a party, edge is legal, actor's side may drive the edge.  The
        write itself is conditional on the observed status.

        Raises:
            NotAuthenticated, NotFound, Forbidden, InvalidTransition,
            StaleState.
        """
        if actor is None:
            raise NotAuthenticated("Login required.")

        booking = await self._bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found.")

        creative = await self._creatives.get_by_id(booking.creative_id)
        party = self._party_of(actor, booking, creative)
        if party is None:
            raise Forbidden("Only the booking's client or creative can change it.")

        validate_transition(booking.status, target)

        if party not in _EDGE_ACTORS[(booking.status, target)]:
            raise Forbidden(
                f"The {party} cannot move a booking from '{booking.status}' to '{target}'."
            )

        updated = await self._bookings.update_status(booking_id, target, expected=booking.status)

        log_audit_event(
            logger=self._logger,
            action="BOOKING_TRANSITION",
            entity_type="Booking",
            entity_id=booking_id,
            user_id=actor.id,
            details={"from_status": str(booking.status), "to_status": str(target), "party": str(party)},
        )

        await self._after_transition(updated, creative, party)
        return updated

    @staticmethod
    def _party_of(
        actor: AppUser,
        booking: Booking,
        creative: Optional[CreativeProfile],
    ) -> Optional[UserRole]:
        if actor.id == booking.client_id:
            return UserRole.CLIENT
        if creative is not None and actor.id == creative.user_id:
            return UserRole.CREATIVE
        return None

    async def _after_transition(
        self,
        booking: Booking,
        creative: Optional[CreativeProfile],
        party: UserRole,
    ) -> None:
        if creative is None:
            self._logger.warning(
                "Booking %s references missing creative %s; skipping side effects.",
                booking.id,
                booking.creative_id,
            )
            return

        if booking.status == BookingStatus.CONFIRMED:
            await self._side_effect(
                "conversation bootstrap",
                lambda: self._conversations.ensure_conversation_for_pair(
                    booking.client_id, creative.user_id, booking.id, strict=True,
                ),
            )

        if booking.status == BookingStatus.COMPLETED:
            await self._side_effect(
                "completed project counter",
                lambda: self._sync_completed_projects(creative.id),
            )

        recipient = creative.user_id if party == UserRole.CLIENT else booking.client_id
        await self._side_effect(
            "notify counter-party",
            lambda: self._notifications.notify(
                recipient,
                NotificationType.BOOKING_UPDATE,
                "Booking Update",
                booking_status_message(booking.status),
                {"booking_id": booking.id, "status": str(booking.status)},
            ),
        )

    async def _sync_completed_projects(self, creative_id: str) -> Optional[CreativeProfile]:
        """Set ``completed_projects`` to the number of completed bookings.

        Recounting makes a retried attempt harmless.  The write is
        conditional on the counter read just before it and never lowers
        the stored value, so a slower concurrent completion cannot
        overwrite a newer count.
        """
        for _ in range(_COUNTER_SYNC_ATTEMPTS):
            completed = await self._bookings.list_for(
                creative_id=creative_id, status=BookingStatus.COMPLETED,
            )
            profile = await self._creatives.get_by_id(creative_id)
            if profile is None:
                raise NotFound(f"Creative {creative_id} not found.")
            if profile.completed_projects >= len(completed):
                return profile
            try:
                return await self._creatives.set_completed_projects(
                    creative_id, len(completed), expected=profile.completed_projects,
                )
            except StaleState:
                continue
        raise StaleState(f"completed_projects for {creative_id} kept changing; giving up.")

    async def _side_effect(self, name: str, func: Callable[[], Awaitable[object]]) -> None:
        try:
            await retry_async(func, policy=self._retry_policy)
        except (MarketplaceError, TimeoutError) as exc:
            self._logger.error(
                "Side effect '%s' failed after retries: %s",
                name,
                exc,
                extra={"event": "SIDE_EFFECT_FAILED"},
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, booking_id: str, actor: Optional[AppUser]) -> Booking:
        """Fetch a booking visible to *actor* (a party, or an admin)."""
        if actor is None:
            raise NotAuthenticated("Login required.")
        booking = await self._bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found.")
        if actor.role != UserRole.ADMIN:
            creative = await self._creatives.get_by_id(booking.creative_id)
            if self._party_of(actor, booking, creative) is None:
                raise Forbidden("You are not a party to this booking.")
        return booking

    async def list_for_client(
        self,
        client_id: str,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        return await self._bookings.list_for(client_id=client_id, status=status)

    async def list_for_creative(
        self,
        creative_id: str,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        """Bookings for a creative profile id."""
        return await self._bookings.list_for(creative_id=creative_id, status=status)

    async def subscribe_to_updates(
        self,
        client_id: str,
        callback: Callable[[Booking], None],
    ) -> Subscription:
        """Deliver every update to the client's bookings to *callback*."""
        def _on_change(event: ChangeEvent) -> None:
            callback(Booking.model_validate(event.record))

        return await self._bookings.subscribe_for_client(client_id, _on_change)
