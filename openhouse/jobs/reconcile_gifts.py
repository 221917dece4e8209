"""Stalled gift report."""

from __future__ import annotations

import logging

from openhouse.clients.giftbit import get_giftbit_client
from openhouse.config import settings
from openhouse.schemas.gift import CreatedGift
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.utils.supabase_client import get_service_client

logger = logging.getLogger(__name__)


async def reconcile_gifts() -> None:
    """Log gifts that need an operator: debited without a link, or stuck in the queue."""
    service = GiftIssuanceService(get_service_client(), get_giftbit_client())
    stalled = service.find_stalled_gifts(settings.stalled_gift_minutes)
    for gift in stalled:
        if isinstance(gift, CreatedGift):
            logger.warning(
                "Gift %s for user %s was debited %s but has no claim link: %s",
                gift.id,
                gift.user_id,
                gift.amount_in_cents,
                gift.error_message or "no error recorded",
            )
        else:
            logger.warning("Gift %s for user %s is still %s", gift.id, gift.user_id, gift.status)

    balance = service.provider.get_account_balance()
    if balance is not None and balance < settings.low_balance_threshold_cents:
        logger.warning("Giftbit account balance is low: %s cents", balance)
    logger.info("reconcile_gifts completed; %s stalled gifts", len(stalled))
