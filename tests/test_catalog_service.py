"""Brand catalog filtering and caching tests."""

from __future__ import annotations

import pytest
from fakes import FakeGiftbit, FakeSupabase

from openhouse.services.catalog_service import CatalogService
from openhouse.utils.errors import ProviderUnavailableError


def test_all_brands_when_nothing_enabled(db: FakeSupabase, giftbit: FakeGiftbit) -> None:
    brands = CatalogService(db, giftbit).list_brands()  # type: ignore[arg-type]

    assert [brand.brand_code for brand in brands] == ["amazonUS", "starbucksUS"]


def test_enabled_codes_filter_catalog(db: FakeSupabase, giftbit: FakeGiftbit) -> None:
    db.insert_row("settings", {"id": "appDefaults", "giftbit": {"enabledBrandCodes": ["starbucksUS"]}})
    catalog = CatalogService(db, giftbit)  # type: ignore[arg-type]

    assert [brand.brand_code for brand in catalog.list_brands()] == ["starbucksUS"]
    assert catalog.find_brand("amazonUS") is None
    assert catalog.find_brand("starbucksUS") is not None


def test_successful_fetch_is_cached(db: FakeSupabase, giftbit: FakeGiftbit) -> None:
    catalog = CatalogService(db, giftbit)  # type: ignore[arg-type]

    catalog.list_brands("us")
    catalog.list_brands("us")
    catalog.list_brands("ca")

    assert giftbit.brand_requests == 2


def test_failures_are_not_cached(db: FakeSupabase, giftbit: FakeGiftbit) -> None:
    catalog = CatalogService(db, giftbit)  # type: ignore[arg-type]
    giftbit.catalog_error = ProviderUnavailableError()

    with pytest.raises(ProviderUnavailableError):
        catalog.list_brands()

    giftbit.catalog_error = None
    assert len(catalog.list_brands()) == 2
    assert giftbit.brand_requests == 2
