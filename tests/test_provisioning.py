"""Tests for just-in-time profile provisioning."""

import asyncio

import pytest

from brand_connect.errors import DuplicateEntity
from brand_connect.models.enums import ApprovalStatus
from brand_connect.models.principal import Principal
from brand_connect.models.profiles import ClientProfile, CreativeProfile
from fakes import InMemoryRecordStore, SuspendingRecordStore, seed_client, seed_creative


def _make_principal(user_id: str = "user-1", **metadata: object) -> Principal:
    return Principal(id=user_id, email="maria@example.com", metadata=metadata)


class TestCreativeProvisioning:
    @pytest.mark.asyncio
    async def test_creates_pending_profile_with_defaults(self, services, store: InMemoryRecordStore) -> None:
        principal = _make_principal(user_type="creative", profession="Photographer", location="Lima")

        profile = await services["provisioning_service"].ensure_profile(principal)

        assert isinstance(profile, CreativeProfile)
        assert profile.title == "Photographer"
        assert profile.category == "General"
        assert profile.bio == "Professional Photographer based in Lima"
        assert profile.hourly_rate == 50_000
        assert profile.approval_status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_existing_profile_is_returned_untouched(self, services, store: InMemoryRecordStore) -> None:
        row = seed_creative(store, user_id="user-1", title="Existing")

        profile = await services["provisioning_service"].ensure_profile(_make_principal(user_type="creative"))

        assert profile.id == row["id"]
        assert profile.title == "Existing"
        assert len(store.rows("creative_profiles")) == 1

    @pytest.mark.asyncio
    async def test_trigger_race_returns_trigger_row(self, services, store: InMemoryRecordStore) -> None:
        def _trigger_inserts() -> None:
            seed_creative(store, user_id="user-1", title="From trigger")

        store.before("insert", "creative_profiles", _trigger_inserts)

        profile = await services["provisioning_service"].ensure_creative_profile(
            _make_principal(user_type="creative"),
        )

        assert profile.title == "From trigger"
        assert len(store.rows("creative_profiles")) == 1

    @pytest.mark.asyncio
    async def test_race_with_unreadable_winner_propagates(self, services, store: InMemoryRecordStore) -> None:
        store.fail("insert", "creative_profiles", DuplicateEntity("duplicate key value"))

        with pytest.raises(DuplicateEntity):
            await services["provisioning_service"].ensure_creative_profile(_make_principal())

    @pytest.mark.asyncio
    async def test_concurrent_calls_create_one_row(self, services, store: InMemoryRecordStore) -> None:
        provisioning = services["provisioning_service"]
        principal = _make_principal(user_type="creative")

        results = await asyncio.gather(*(provisioning.ensure_profile(principal) for _ in range(4)))

        assert len({profile.id for profile in results}) == 1
        assert len(store.rows("creative_profiles")) == 1

    @pytest.mark.asyncio
    async def test_interleaved_calls_create_one_row_and_release_locks(
        self, suspending_services, suspending_store: SuspendingRecordStore,
    ) -> None:
        provisioning = suspending_services["provisioning_service"]
        creative = _make_principal("user-1", user_type="creative")
        client = _make_principal("user-2")

        results = await asyncio.gather(
            *(provisioning.ensure_profile(creative) for _ in range(3)),
            *(provisioning.ensure_profile(client) for _ in range(3)),
        )

        assert len({profile.id for profile in results}) == 2
        assert len(suspending_store.rows("creative_profiles")) == 1
        assert len(suspending_store.rows("client_profiles")) == 1
        assert len(provisioning._locks) == 0


class TestClientProvisioning:
    @pytest.mark.asyncio
    async def test_client_is_default_role(self, services, store: InMemoryRecordStore) -> None:
        profile = await services["provisioning_service"].ensure_profile(_make_principal(phone="999"))

        assert isinstance(profile, ClientProfile)
        assert profile.id == "user-1"
        assert profile.full_name == "maria"
        assert profile.phone == "999"

    @pytest.mark.asyncio
    async def test_existing_client_profile(self, services, store: InMemoryRecordStore) -> None:
        seed_client(store, "user-1", full_name="Maria Q")

        profile = await services["provisioning_service"].ensure_profile(_make_principal(full_name="Other"))

        assert profile.full_name == "Maria Q"
        assert len(store.rows("client_profiles")) == 1

    @pytest.mark.asyncio
    async def test_admin_is_never_provisioned(self, services, store: InMemoryRecordStore) -> None:
        result = await services["provisioning_service"].ensure_profile(_make_principal(role="admin"))

        assert result is None
        assert store.rows("client_profiles") == []
        assert store.rows("creative_profiles") == []
