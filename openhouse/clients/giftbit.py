"""Giftbit API client.

Calls are synchronous with a bounded timeout and are never retried here;
retries belong to the caller and must reuse the same gift id so Giftbit can
deduplicate them.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import httpx

from openhouse.config import settings
from openhouse.schemas.gift import ClaimLink, GiftBrand
from openhouse.utils.errors import (
    ConfigurationError,
    ProviderRequestFailedError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

BRAND_PAGE_LIMIT = 500


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500]
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        return str(errors[0].get("message") or payload)
    return str(payload)[:500]


def _extract_link(payload: dict[str, Any]) -> ClaimLink | None:
    """Pull the first claim link out of a ``direct_links`` response."""
    links = payload.get("direct_links")
    entry: Any = links[0] if isinstance(links, list) and links else payload.get("direct_link")
    if not entry:
        return None
    if isinstance(entry, str):
        return ClaimLink(claim_url=entry)
    if isinstance(entry, dict):
        claim_url = entry.get("claim_url") or entry.get("url")
        if not claim_url:
            return None
        short_id = entry.get("short_id")
        return ClaimLink(claim_url=claim_url, short_id=str(short_id) if short_id else None)
    return None


class GiftbitClient:
    """Minimal wrapper over the Giftbit papi/v1 endpoints used by the app."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_seconds: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.http = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("GIFTBIT_API_KEY is not configured on the server.")

        try:
            response = self.http.request(
                method,
                endpoint,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.TimeoutException as exc:
            logger.error("Giftbit %s %s timed out", method, endpoint)
            raise ProviderUnavailableError("Gift provider request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Giftbit %s %s failed: %s", method, endpoint, exc)
            raise ProviderUnavailableError() from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.error(
                "Giftbit API error (%s) on %s %s: %s",
                response.status_code,
                method,
                endpoint,
                detail,
            )
            raise ProviderRequestFailedError(response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {"data": payload}

    def list_brands(self, region_code: str | None = None) -> list[GiftBrand]:
        """Return the full brand catalog, optionally for one region."""
        params: dict[str, Any] = {"limit": BRAND_PAGE_LIMIT}
        if region_code:
            params["region_code"] = region_code
        try:
            payload = self._request("GET", "brands", params=params)
        except ProviderRequestFailedError as exc:
            raise ProviderUnavailableError("Failed to fetch brands from Giftbit.") from exc
        return [GiftBrand.model_validate(item) for item in payload.get("brands") or []]

    def list_regions(self) -> list[dict[str, Any]]:
        """Return the regions Giftbit can deliver to."""
        try:
            payload = self._request("GET", "regions")
        except ProviderRequestFailedError as exc:
            raise ProviderUnavailableError("Failed to fetch regions from Giftbit.") from exc
        return list(payload.get("regions") or [])

    def create_claim_link(self, gift_id: str, brand_code: str, amount_cents: int) -> ClaimLink:
        """Mint one claim link; ``gift_id`` doubles as Giftbit's idempotency key."""
        payload = self._request(
            "POST",
            "direct_links",
            json={
                "id": gift_id,
                "price_in_cents": amount_cents,
                "brand_codes": [brand_code],
                "link_count": 1,
            },
        )
        link = _extract_link(payload)
        if link is None:
            logger.error("No claim URL found in Giftbit response for gift %s: %s", gift_id, payload)
            raise ProviderRequestFailedError(
                None, f"Link generation failed for gift {gift_id}. No URL in response."
            )
        return link

    def get_reward(self, gift_id: str) -> dict[str, Any]:
        """Return Giftbit's view of one reward, including its ``status``."""
        payload = self._request("GET", f"gifts/{gift_id}")
        gift = payload.get("gift")
        return gift if isinstance(gift, dict) else payload

    def list_rewards(self, limit: int = 100) -> list[dict[str, Any]]:
        """Return recently issued rewards with provider-side status."""
        payload = self._request("GET", "gifts", params={"limit": limit})
        return list(payload.get("gifts") or [])

    def cancel(self, gift_id: str) -> None:
        """Void an unclaimed reward."""
        self._request("DELETE", f"gifts/{gift_id}")

    def get_account_balance(self) -> int | None:
        """Return the Giftbit account funds in cents, or None when unavailable."""
        try:
            payload = self._request("GET", "funds")
        except Exception:
            logger.warning("Could not read Giftbit funds", exc_info=True)
            return None
        try:
            value = payload.get("balance_in_cents")
            if value is None:
                fundsbycurrency = payload.get("fundsbycurrency") or {}
                value = (fundsbycurrency.get("USD") or {}).get("available_in_cents")
            return int(value) if value is not None else None
        except (AttributeError, TypeError, ValueError):
            logger.warning("Unexpected Giftbit funds payload: %r", payload)
            return None


@lru_cache(maxsize=1)
def get_giftbit_client() -> GiftbitClient:
    """Return the process-wide Giftbit client built from settings."""
    return GiftbitClient(
        api_key=settings.giftbit_api_key,
        base_url=settings.giftbit_api_url,
        timeout_seconds=settings.giftbit_timeout_seconds,
    )
