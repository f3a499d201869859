"""
Business Logic Services Package.

Services depend on the Repository layer for data access and on the
``SessionManager`` for the current user.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the application layer (UI / commands) can
consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from brand_connect.auth import SessionManager
from brand_connect.config import AppConfig
from brand_connect.logger import StructuredLogger, get_logger
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
from brand_connect.services.approval import ApprovalWorkflow
from brand_connect.services.bookings import BookingStateMachine
from brand_connect.services.catalog import CatalogService
from brand_connect.services.conversations import ConversationCoordinator
from brand_connect.services.identity import IdentityResolver
from brand_connect.services.notifications import NotificationDispatcher
from brand_connect.services.portfolio import PortfolioService
from brand_connect.services.provisioning import ProfileProvisioningService
from brand_connect.services.reviews import ReviewService
from brand_connect.services.session_authority import SessionAuthority
from brand_connect.store.base import AuthProvider, RecordStore
from brand_connect.utils.retry import RetryPolicy


class ServiceContainer(TypedDict):
    """Typed container for all marketplace services."""

    # --- Identity & session ---
    identity_resolver: IdentityResolver
    provisioning_service: ProfileProvisioningService
    session_authority: SessionAuthority

    # --- Workflows ---
    approval_workflow: ApprovalWorkflow
    booking_state_machine: BookingStateMachine
    conversation_coordinator: ConversationCoordinator
    notification_dispatcher: NotificationDispatcher

    # --- Catalog, portfolio & reviews ---
    catalog_service: CatalogService
    portfolio_service: PortfolioService
    review_service: ReviewService


def create_services(
    store: RecordStore,
    auth: AuthProvider,
    config: AppConfig,
    session: SessionManager,
    logger: Optional[StructuredLogger] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup and passes the
    returned dict to views / commands as needed.

    Args:
        store: Record store adapter (Supabase in production).
        auth: Auth provider adapter.
        config: Application configuration (injected into services that need it).
        session: Shared holder for the current user and tokens.
        logger: Logger for every service; defaults to the ``services`` logger.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("services", config)

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    client_repo = ClientProfileRepository(store=store, logger=logger)
    creative_repo = CreativeProfileRepository(store=store, logger=logger)
    service_repo = ServiceRepository(store=store, logger=logger)
    booking_repo = BookingRepository(store=store, logger=logger)
    conversation_repo = ConversationRepository(store=store, logger=logger)
    message_repo = MessageRepository(store=store, logger=logger)
    notification_repo = NotificationRepository(store=store, logger=logger)
    review_repo = ReviewRepository(store=store, logger=logger)
    portfolio_repo = PortfolioRepository(store=store, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services (no service dependencies)
    # ------------------------------------------------------------------
    notification_dispatcher = NotificationDispatcher(
        repo=notification_repo,
        logger=logger,
        retry_policy=RetryPolicy.from_config(config),
        page_size=config.NOTIFICATION_PAGE_SIZE,
    )
    conversation_coordinator = ConversationCoordinator(
        conversation_repo=conversation_repo,
        message_repo=message_repo,
        logger=logger,
    )
    provisioning_service = ProfileProvisioningService(
        client_repo=client_repo,
        creative_repo=creative_repo,
        config=config,
        logger=logger,
    )
    identity_resolver = IdentityResolver(
        auth=auth,
        client_repo=client_repo,
        creative_repo=creative_repo,
        logger=logger,
    )
    catalog_service = CatalogService(
        service_repo=service_repo,
        creative_repo=creative_repo,
        logger=logger,
    )
    portfolio_service = PortfolioService(
        portfolio_repo=portfolio_repo,
        creative_repo=creative_repo,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    session_authority = SessionAuthority(
        auth=auth,
        resolver=identity_resolver,
        provisioning=provisioning_service,
        client_repo=client_repo,
        creative_repo=creative_repo,
        session=session,
        config=config,
        logger=logger,
    )
    approval_workflow = ApprovalWorkflow(
        creative_repo=creative_repo,
        client_repo=client_repo,
        notifications=notification_dispatcher,
        logger=logger,
    )
    booking_state_machine = BookingStateMachine(
        booking_repo=booking_repo,
        creative_repo=creative_repo,
        service_repo=service_repo,
        conversations=conversation_coordinator,
        notifications=notification_dispatcher,
        config=config,
        logger=logger,
    )
    review_service = ReviewService(
        review_repo=review_repo,
        booking_repo=booking_repo,
        creative_repo=creative_repo,
        notifications=notification_dispatcher,
        logger=logger,
    )

    return ServiceContainer(
        identity_resolver=identity_resolver,
        provisioning_service=provisioning_service,
        session_authority=session_authority,
        approval_workflow=approval_workflow,
        booking_state_machine=booking_state_machine,
        conversation_coordinator=conversation_coordinator,
        notification_dispatcher=notification_dispatcher,
        catalog_service=catalog_service,
        portfolio_service=portfolio_service,
        review_service=review_service,
    )
