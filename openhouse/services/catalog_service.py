"""Gift brand catalog filtered by admin settings."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from openhouse.clients.giftbit import GiftbitClient
from openhouse.config import settings
from openhouse.schemas.gift import GiftBrand
from openhouse.services.common import SupabaseService
from supabase import Client

logger = logging.getLogger(__name__)

APP_DEFAULTS_ID = "appDefaults"

_brand_cache: dict[str, tuple[float, list[GiftBrand]]] = {}
_cache_lock = threading.Lock()


def _cache_get(key: str) -> list[GiftBrand] | None:
    now = time.monotonic()
    with _cache_lock:
        entry = _brand_cache.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= now:
            _brand_cache.pop(key, None)
            return None
        return value


def _cache_set(key: str, value: list[GiftBrand], ttl_seconds: int) -> None:
    if ttl_seconds <= 0:
        return
    with _cache_lock:
        _brand_cache[key] = (time.monotonic() + ttl_seconds, value)


def clear_brand_cache() -> None:
    """Drop cached brand lists (admin settings changed, tests)."""
    with _cache_lock:
        _brand_cache.clear()


class CatalogService:
    """Brands and regions agents may choose from."""

    def __init__(self, client: Client, provider: GiftbitClient) -> None:
        self.db = SupabaseService(client)
        self.provider = provider

    def enabled_brand_codes(self) -> list[str]:
        """Return the admin-enabled brand codes; empty means every brand."""
        rows = self.db.select_many("settings", filters={"id": APP_DEFAULTS_ID}, limit=1)
        if not rows:
            return []
        giftbit: dict[str, Any] = rows[0].get("giftbit") or {}
        return list(giftbit.get("enabledBrandCodes") or [])

    def list_brands(self, region_code: str | None = None) -> list[GiftBrand]:
        """Return provider brands for a region, restricted to enabled codes.

        Only successful fetches are cached; a provider failure propagates.
        """
        cache_key = region_code or "*"
        cached = _cache_get(cache_key)
        if cached is not None:
            return list(cached)

        brands = self.provider.list_brands(region_code)
        enabled = set(self.enabled_brand_codes())
        if enabled:
            brands = [brand for brand in brands if brand.brand_code in enabled]

        _cache_set(cache_key, brands, settings.brand_cache_ttl_seconds)
        logger.info("Loaded %s gift brands for region %s", len(brands), cache_key)
        return list(brands)

    def find_brand(self, brand_code: str, region_code: str | None = None) -> GiftBrand | None:
        """Return one enabled brand by code."""
        for brand in self.list_brands(region_code):
            if brand.brand_code == brand_code:
                return brand
        return None

    def list_regions(self) -> list[dict[str, Any]]:
        return self.provider.list_regions()
