"""Tests for creatives curating their portfolio."""

import pytest
from pydantic import ValidationError

from brand_connect.errors import Forbidden, NotAuthenticated, NotFound, ValidationFailed
from brand_connect.models.enums import UserRole
from brand_connect.models.profiles import PortfolioItemUpdate
from fakes import InMemoryRecordStore, make_user, seed_creative

_CREATIVE = make_user(UserRole.CREATIVE, "creative-user-1")
_OTHER_CREATIVE = make_user(UserRole.CREATIVE, "creative-user-2")


def _seed_item(store: InMemoryRecordStore, creative_id: str, title: str = "Brand campaign") -> dict:
    return store.put("portfolio_items", {
        "creative_id": creative_id,
        "title": title,
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    })


class TestAddItem:
    @pytest.mark.asyncio
    async def test_add_defaults_category_from_profile(self, services, store: InMemoryRecordStore) -> None:
        profile = seed_creative(store, user_id=_CREATIVE.id, category="Video")

        item = await services["portfolio_service"].add_item(
            _CREATIVE, "  Launch film ", image_url="https://cdn.example.com/launch.jpg",
        )

        assert item.creative_id == profile["id"]
        assert item.title == "Launch film"
        assert item.category == "Video"
        assert store.rows("portfolio_items")[0]["image_url"] == "https://cdn.example.com/launch.jpg"

    @pytest.mark.asyncio
    async def test_title_is_required(self, services, store: InMemoryRecordStore) -> None:
        seed_creative(store, user_id=_CREATIVE.id)

        with pytest.raises(ValidationFailed):
            await services["portfolio_service"].add_item(_CREATIVE, "   ")
        assert store.rows("portfolio_items") == []

    @pytest.mark.asyncio
    async def test_only_creatives_with_a_profile(self, services, store: InMemoryRecordStore) -> None:
        portfolio = services["portfolio_service"]

        with pytest.raises(NotAuthenticated):
            await portfolio.add_item(None, "Work")
        with pytest.raises(Forbidden):
            await portfolio.add_item(make_user(UserRole.CLIENT), "Work")
        with pytest.raises(NotFound):
            await portfolio.add_item(_CREATIVE, "Work")


class TestUpdateItem:
    @pytest.mark.asyncio
    async def test_only_set_fields_change(self, services, store: InMemoryRecordStore) -> None:
        profile = seed_creative(store, user_id=_CREATIVE.id)
        row = _seed_item(store, profile["id"])
        store.tables["portfolio_items"][row["id"]]["description"] = "Keep me"

        item = await services["portfolio_service"].update_item(
            _CREATIVE, row["id"], PortfolioItemUpdate(title=" Rebrand ", category="Design"),
        )

        assert item.title == "Rebrand"
        assert item.category == "Design"
        assert item.description == "Keep me"
        assert item.updated_at.isoformat() != "2026-01-01T00:00:00+00:00"

    @pytest.mark.asyncio
    async def test_empty_update_writes_nothing(self, services, store: InMemoryRecordStore) -> None:
        profile = seed_creative(store, user_id=_CREATIVE.id)
        row = _seed_item(store, profile["id"])

        item = await services["portfolio_service"].update_item(_CREATIVE, row["id"], PortfolioItemUpdate())

        assert item.title == "Brand campaign"
        assert ("update", "portfolio_items") not in store.calls

    @pytest.mark.asyncio
    async def test_title_cannot_be_cleared(self, services, store: InMemoryRecordStore) -> None:
        profile = seed_creative(store, user_id=_CREATIVE.id)
        row = _seed_item(store, profile["id"])
        portfolio = services["portfolio_service"]

        with pytest.raises(ValidationFailed):
            await portfolio.update_item(_CREATIVE, row["id"], PortfolioItemUpdate(title=None))
        with pytest.raises(ValidationFailed):
            await portfolio.update_item(_CREATIVE, row["id"], PortfolioItemUpdate(title="  "))
        with pytest.raises(ValidationError):
            PortfolioItemUpdate(title="")
        assert store.rows("portfolio_items")[0]["title"] == "Brand campaign"

    @pytest.mark.asyncio
    async def test_cannot_edit_another_creatives_item(self, services, store: InMemoryRecordStore) -> None:
        seed_creative(store, user_id=_CREATIVE.id)
        other = seed_creative(store, user_id=_OTHER_CREATIVE.id)
        row = _seed_item(store, other["id"])

        with pytest.raises(Forbidden):
            await services["portfolio_service"].update_item(_CREATIVE, row["id"], PortfolioItemUpdate(title="Mine"))
        assert store.rows("portfolio_items")[0]["title"] == "Brand campaign"


class TestRemoveItem:
    @pytest.mark.asyncio
    async def test_owner_removes_item(self, services, store: InMemoryRecordStore) -> None:
        profile = seed_creative(store, user_id=_CREATIVE.id)
        keep = _seed_item(store, profile["id"], "Keep")
        drop = _seed_item(store, profile["id"], "Drop")

        await services["portfolio_service"].remove_item(_CREATIVE, drop["id"])

        assert [row["id"] for row in store.rows("portfolio_items")] == [keep["id"]]

    @pytest.mark.asyncio
    async def test_missing_or_foreign_item(self, services, store: InMemoryRecordStore) -> None:
        seed_creative(store, user_id=_CREATIVE.id)
        other = seed_creative(store, user_id=_OTHER_CREATIVE.id)
        row = _seed_item(store, other["id"])
        portfolio = services["portfolio_service"]

        with pytest.raises(NotFound):
            await portfolio.remove_item(_CREATIVE, "missing")
        with pytest.raises(Forbidden):
            await portfolio.remove_item(_CREATIVE, row["id"])
        assert len(store.rows("portfolio_items")) == 1


class TestListItems:
    @pytest.mark.asyncio
    async def test_newest_first_and_scoped_to_creative(self, services, store: InMemoryRecordStore) -> None:
        profile = seed_creative(store, user_id=_CREATIVE.id)
        other = seed_creative(store, user_id=_OTHER_CREATIVE.id)
        _seed_item(store, profile["id"], "Old")
        newer = _seed_item(store, profile["id"], "New")
        store.tables["portfolio_items"][newer["id"]]["created_at"] = "2026-06-01T00:00:00+00:00"
        _seed_item(store, other["id"], "Elsewhere")

        items = await services["portfolio_service"].list_items(profile["id"])

        assert [item.title for item in items] == ["New", "Old"]
