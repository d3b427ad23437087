"""Tests for CategoryResolver and MetadataRegistrar."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from guestlens.errors import (
    GuestlensCategoryError,
    GuestlensNetworkError,
    GuestlensRegistrationError,
    GuestlensValidationError,
)
from guestlens.models import Category
from guestlens.pipeline import CategoryResolver, MetadataRegistrar

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_category_api(*lists: list[Category]) -> MagicMock:
    api = MagicMock()
    api.list = AsyncMock(side_effect=list(lists))
    api.create = AsyncMock()
    return api


CEREMONY = Category(category_id="1", name="Ceremony")
PARTY = Category(category_id="2", name="Party")


# =========================================================================
# CategoryResolver
# =========================================================================


class TestCategoryResolver:
    async def test_refresh_caches(self):
        resolver = CategoryResolver(_make_category_api([CEREMONY, PARTY]))
        assert await resolver.refresh() == [CEREMONY, PARTY]
        assert resolver.get("2") == PARTY
        assert resolver.get("9") is None

    async def test_refresh_failure_keeps_previous_list(self):
        api = _make_category_api([CEREMONY])
        resolver = CategoryResolver(api)
        await resolver.refresh()
        api.list.side_effect = GuestlensNetworkError("down")
        with pytest.raises(GuestlensCategoryError) as exc_info:
            await resolver.refresh()
        assert resolver.categories == [CEREMONY]
        assert exc_info.value.context["operation"] == "refresh"

    async def test_first_load_failure_leaves_empty_list(self):
        api = MagicMock()
        api.list = AsyncMock(side_effect=GuestlensNetworkError("down"))
        resolver = CategoryResolver(api)
        with pytest.raises(GuestlensCategoryError):
            await resolver.refresh()
        assert resolver.categories == []

    async def test_select(self):
        resolver = CategoryResolver(_make_category_api([CEREMONY, PARTY]))
        await resolver.refresh()
        assert resolver.select("2") == PARTY
        assert resolver.active_id == "2"

    async def test_select_unknown(self):
        resolver = CategoryResolver(_make_category_api([CEREMONY]))
        await resolver.refresh()
        with pytest.raises(GuestlensValidationError):
            resolver.select("42")
        assert resolver.active_id is None

    async def test_active_cleared_when_category_disappears(self):
        resolver = CategoryResolver(_make_category_api([CEREMONY, PARTY], [CEREMONY]))
        await resolver.refresh()
        resolver.select("2")
        await resolver.refresh()
        assert resolver.active_id is None

    async def test_create_selects_and_refreshes(self):
        dance = Category(category_id="3", name="Dance")
        api = _make_category_api([CEREMONY, dance])
        api.create.return_value = "3"
        resolver = CategoryResolver(api)
        assert await resolver.create("  Dance ") == "3"
        api.create.assert_awaited_once_with("Dance")
        assert resolver.active_id == "3"
        assert resolver.categories == [CEREMONY, dance]

    async def test_create_same_name_twice_returns_distinct_ids(self):
        api = _make_category_api(
            [Category("3", "Dance")],
            [Category("3", "Dance"), Category("4", "Dance")],
        )
        api.create.side_effect = ["3", "4"]
        resolver = CategoryResolver(api)
        assert await resolver.create("Dance") == "3"
        assert await resolver.create("Dance") == "4"
        assert resolver.active_id == "4"

    async def test_create_keeps_new_category_when_refresh_fails(self):
        api = MagicMock()
        api.create = AsyncMock(return_value="5")
        api.list = AsyncMock(side_effect=GuestlensNetworkError("down"))
        resolver = CategoryResolver(api)
        assert await resolver.create("Speeches") == "5"
        assert resolver.categories == [Category("5", "Speeches")]
        assert resolver.active_id == "5"

    @pytest.mark.parametrize("name", ["", "   "])
    async def test_create_blank_name_sends_nothing(self, name):
        api = _make_category_api()
        with pytest.raises(GuestlensValidationError):
            await CategoryResolver(api).create(name)
        api.create.assert_not_awaited()

    async def test_create_failure(self):
        api = _make_category_api()
        api.create.side_effect = GuestlensNetworkError("down")
        resolver = CategoryResolver(api)
        with pytest.raises(GuestlensCategoryError):
            await resolver.create("Speeches")
        assert resolver.active_id is None


# =========================================================================
# MetadataRegistrar
# =========================================================================


class TestMetadataRegistrar:
    async def test_register(self):
        api = MagicMock()
        api.add = AsyncMock(return_value=2)
        result = await MetadataRegistrar(api).register(["u1", "u2"], "3")
        assert result.created_count == 2
        assert result.urls == ["u1", "u2"]
        assert result.pending_approval is True
        api.add.assert_awaited_once_with(["u1", "u2"], "3")

    async def test_count_mismatch_still_returns(self):
        api = MagicMock()
        api.add = AsyncMock(return_value=1)
        result = await MetadataRegistrar(api).register(["u1", "u2"], "3")
        assert result.created_count == 1

    @pytest.mark.parametrize(("urls", "category"), [([], "3"), ([""], "3"), (["u1"], ""), (["u1"], "  ")])
    async def test_validation_before_any_call(self, urls, category):
        api = MagicMock()
        api.add = AsyncMock()
        with pytest.raises(GuestlensValidationError):
            await MetadataRegistrar(api).register(urls, category)
        api.add.assert_not_awaited()

    async def test_backend_failure_reports_orphans(self):
        api = MagicMock()
        api.add = AsyncMock(side_effect=GuestlensNetworkError("timeout"))
        metrics = MagicMock()
        with pytest.raises(GuestlensRegistrationError) as exc_info:
            await MetadataRegistrar(api, metrics).register(["u1", "u2"], "3")
        assert exc_info.value.context == {"orphaned_urls": ["u1", "u2"], "category_id": "3"}
        assert isinstance(exc_info.value.cause, GuestlensNetworkError)
        metrics.increment.assert_called_once_with("guestlens.registration_failure_total")
