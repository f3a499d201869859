from __future__ import annotations

import pytest

from brand_connect.auth import SessionManager
from brand_connect.config import AppConfig
from brand_connect.logger import StructuredLogger
from brand_connect.services import ServiceContainer, create_services
from fakes import FakeAuthProvider, InMemoryRecordStore, SuspendingRecordStore


@pytest.fixture(scope="session")
def logger(tmp_path_factory: pytest.TempPathFactory) -> StructuredLogger:
    log_file = tmp_path_factory.mktemp("logs") / "tests.log"
    return StructuredLogger(
        name="brand_connect.tests",
        log_file=str(log_file),
        config=AppConfig(SUPABASE_URL="http://localhost:54321"),
    )


@pytest.fixture
def config() -> AppConfig:
    # No trigger wait and no backoff keep side-effect retries instant.
    return AppConfig(
        SUPABASE_URL="http://localhost:54321",
        PROFILE_TRIGGER_WAIT_S=0,
        SIDE_EFFECT_MAX_ATTEMPTS=3,
        SIDE_EFFECT_BACKOFF_S=0,
        SIDE_EFFECT_TIMEOUT_S=5,
        BOOKING_ADVANCE_DAYS=90,
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def auth() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def session() -> SessionManager:
    return SessionManager()


@pytest.fixture
def services(
    store: InMemoryRecordStore,
    auth: FakeAuthProvider,
    config: AppConfig,
    session: SessionManager,
    logger: StructuredLogger,
) -> ServiceContainer:
    return create_services(store=store, auth=auth, config=config, session=session, logger=logger)


@pytest.fixture
def suspending_store() -> SuspendingRecordStore:
    return SuspendingRecordStore()


@pytest.fixture
def suspending_services(
    suspending_store: SuspendingRecordStore,
    auth: FakeAuthProvider,
    config: AppConfig,
    session: SessionManager,
    logger: StructuredLogger,
) -> ServiceContainer:
    """Services over a store that interleaves concurrent tasks."""
    return create_services(store=suspending_store, auth=auth, config=config, session=session, logger=logger)
