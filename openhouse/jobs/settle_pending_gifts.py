"""Pending gift settlement sweep."""

from __future__ import annotations

import logging

from openhouse.clients.giftbit import get_giftbit_client
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.utils.supabase_client import get_service_client

logger = logging.getLogger(__name__)

SWEEP_BATCH_SIZE = 50


async def settle_pending_gifts() -> None:
    """Settle queued gifts whose request-time background task never ran."""
    service = GiftIssuanceService(get_service_client(), get_giftbit_client())
    gifts = service.settle_pending_gifts(limit=SWEEP_BATCH_SIZE)
    logger.info("settle_pending_gifts completed for %s gifts", len(gifts))
