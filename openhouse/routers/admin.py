"""Operator endpoints for settlement, refunds and reconciliation."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from openhouse.clients.giftbit import GiftbitClient
from openhouse.dependencies import (
    get_admin_user,
    get_current_user_id,
    get_db_client,
    get_issuance_service,
    get_provider,
)
from openhouse.schemas.ledger import CreditBalanceRequest
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.services.ledger_service import LedgerService
from supabase import Client

router = APIRouter()


@router.post("/gifts/settle-pending")
def settle_pending(
    limit: int = Query(default=50, ge=1, le=500),
    admin: Any = Depends(get_admin_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Settle queued gifts now instead of waiting for the sweep job."""
    gifts = service.settle_pending_gifts(limit=limit)
    return {"gifts": [gift.model_dump(mode="json") for gift in gifts]}


@router.get("/gifts/stalled")
def stalled_gifts(
    older_than_minutes: int | None = Query(default=None, ge=1),
    admin: Any = Depends(get_admin_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Return debited gifts missing a link and long-queued gifts."""
    gifts = service.find_stalled_gifts(older_than_minutes)
    return {"gifts": [gift.model_dump(mode="json") for gift in gifts]}


@router.get("/gifts/provider")
def provider_report(
    limit: int = Query(default=100, ge=1, le=500),
    admin: Any = Depends(get_admin_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Compare Giftbit reward statuses with local gift statuses."""
    return {"rewards": service.provider_report(limit=limit)}


@router.post("/gifts/{gift_id}/settle")
def settle_gift(
    gift_id: str,
    admin: Any = Depends(get_admin_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Run settlement for one queued gift."""
    return {"gift": service.process_gift(gift_id).model_dump(mode="json")}


@router.post("/gifts/{gift_id}/cancel")
def cancel_gift(
    gift_id: str,
    admin: Any = Depends(get_admin_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Void a gift at Giftbit and refund the agent."""
    gift = service.cancel_gift(gift_id, actor_id=get_current_user_id(admin))
    return {"gift": gift.model_dump(mode="json")}


@router.post("/gifts/{gift_id}/refund")
def refund_gift(
    gift_id: str,
    admin: Any = Depends(get_admin_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Refund a debited gift whose link was never issued."""
    gift = service.refund_gift(gift_id, actor_id=get_current_user_id(admin))
    return {"gift": gift.model_dump(mode="json")}


@router.post("/users/{user_id}/credit")
def credit_user(
    user_id: str,
    payload: CreditBalanceRequest,
    admin: Any = Depends(get_admin_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Add funds to an agent's balance."""
    result = LedgerService(client).credit(
        user_id,
        payload.amount_cents,
        description=payload.description,
        created_by_id=get_current_user_id(admin),
    )
    return {"available_balance_cents": result.balance_cents, "transaction": result.transaction}


@router.get("/provider/funds")
def provider_funds(
    admin: Any = Depends(get_admin_user),
    provider: GiftbitClient = Depends(get_provider),
) -> dict:
    """Return the Giftbit account balance; ``null`` when it cannot be read."""
    return {"balance_in_cents": provider.get_account_balance()}
