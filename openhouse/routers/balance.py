"""Balance endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from openhouse.dependencies import get_authenticated_user, get_current_user_id, get_db_client
from openhouse.schemas.ledger import BalanceResponse
from openhouse.services.ledger_service import LedgerService
from supabase import Client

router = APIRouter()


@router.get("", response_model=BalanceResponse)
def get_balance(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return the current agent's balance and ledger entries."""
    user_id = get_current_user_id(user)
    service = LedgerService(client)
    transactions, total = service.list_transactions(user_id, limit=limit, offset=offset)
    return {
        "available_balance_cents": service.get_balance(user_id),
        "transactions": transactions,
        "total": total,
    }
