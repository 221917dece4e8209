"""Agent balance ledger.

Every balance change goes through ``commit_ledger_change``, a Postgres
function that moves ``users.available_balance_cents`` only when it still
equals the balance this service read, and writes the matching transaction
and gift rows in the same database transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from openhouse.config import settings
from openhouse.schemas.gift import Gift, parse_gift
from openhouse.schemas.ledger import TransactionType
from openhouse.services.common import SupabaseService
from openhouse.utils.errors import (
    ConcurrentUpdateError,
    ConflictError,
    InsufficientFundsError,
    InvalidInputError,
    NotFoundError,
)
from supabase import Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a committed balance change."""

    balance_cents: int
    gift: Gift | None = None
    transaction: dict[str, Any] | None = None


class LedgerService:
    """Read and move agent balances with an auditable transaction trail."""

    def __init__(self, client: Client, max_retries: int | None = None) -> None:
        self.db = SupabaseService(client)
        self.max_retries = max(1, max_retries or settings.ledger_max_retries)

    def get_balance(self, user_id: str) -> int:
        """Return the agent's current available balance in cents."""
        row = self.db.select_one(
            "users",
            {"id": user_id},
            columns="id,available_balance_cents",
            not_found_label="User",
        )
        return int(row.get("available_balance_cents") or 0)

    def reserve(
        self,
        user_id: str,
        amount_cents: int,
        gift_payload: dict[str, Any],
        description: str,
    ) -> LedgerResult:
        """Debit the balance and insert a new gift row in one atomic unit."""
        return self._commit(
            user_id,
            -amount_cents,
            transaction={
                "type": TransactionType.DEBIT.value,
                "amount_cents": amount_cents,
                "description": description,
                "reference_id": gift_payload["id"],
                "created_by_id": user_id,
            },
            gift_insert=gift_payload,
        )

    def debit_for_gift(
        self,
        user_id: str,
        gift_id: str,
        amount_cents: int,
        gift_update: dict[str, Any],
        expected_status: str,
        description: str,
    ) -> LedgerResult:
        """Debit the balance and transition an existing gift atomically."""
        return self._commit(
            user_id,
            -amount_cents,
            transaction={
                "type": TransactionType.DEBIT.value,
                "amount_cents": amount_cents,
                "description": description,
                "reference_id": gift_id,
                "created_by_id": user_id,
            },
            gift_id=gift_id,
            gift_update=gift_update,
            expected_gift_status=expected_status,
        )

    def credit(
        self,
        user_id: str,
        amount_cents: int,
        description: str,
        created_by_id: str | None = None,
        reference_id: str | None = None,
        gift_update: dict[str, Any] | None = None,
        expected_status: str | None = None,
    ) -> LedgerResult:
        """Add funds, optionally transitioning the gift being refunded."""
        return self._commit(
            user_id,
            amount_cents,
            transaction={
                "type": TransactionType.CREDIT.value,
                "amount_cents": amount_cents,
                "description": description,
                "reference_id": reference_id,
                "created_by_id": created_by_id,
            },
            gift_id=reference_id if gift_update else None,
            gift_update=gift_update,
            expected_gift_status=expected_status,
        )

    def list_transactions(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Return ledger entries newest-first with total count for pagination."""
        rows = self.db.select_many(
            "transactions",
            filters={"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        total = self.db.count("transactions", {"user_id": user_id})
        return rows, total

    def _commit(
        self,
        user_id: str,
        delta_cents: int,
        transaction: dict[str, Any],
        gift_insert: dict[str, Any] | None = None,
        gift_id: str | None = None,
        gift_update: dict[str, Any] | None = None,
        expected_gift_status: str | None = None,
    ) -> LedgerResult:
        if delta_cents == 0:
            raise InvalidInputError("Amount must be greater than zero")

        for attempt in range(1, self.max_retries + 1):
            balance = self.get_balance(user_id)
            if balance + delta_cents < 0:
                raise InsufficientFundsError(required=-delta_cents, available=balance)

            result = self.db.rpc(
                "commit_ledger_change",
                {
                    "p_user_id": user_id,
                    "p_expected_balance": balance,
                    "p_delta": delta_cents,
                    "p_transaction": transaction,
                    "p_gift_insert": gift_insert,
                    "p_gift_id": gift_id,
                    "p_gift_update": gift_update,
                    "p_expected_gift_status": expected_gift_status,
                },
            )
            if result.get("success"):
                gift_row = result.get("gift")
                return LedgerResult(
                    balance_cents=int(result["balance"]),
                    gift=parse_gift(gift_row) if gift_row else None,
                    transaction=result.get("transaction"),
                )

            reason = str(result.get("reason") or "")
            if reason == "balance_changed":
                logger.info(
                    "Balance for user %s changed during commit (attempt %s/%s)",
                    user_id,
                    attempt,
                    self.max_retries,
                )
                continue
            self._raise_for_reason(reason, required=max(0, -delta_cents), available=balance)

        raise ConcurrentUpdateError()

    @staticmethod
    def _raise_for_reason(reason: str, required: int, available: int) -> None:
        if reason == "insufficient_funds":
            raise InsufficientFundsError(required=required, available=available)
        if reason == "user_not_found":
            raise NotFoundError("User")
        if reason == "gift_not_found":
            raise NotFoundError("Gift")
        if reason == "gift_state_changed":
            raise ConflictError("Gift status changed concurrently", code="GIFT_STATE_CHANGED")
        raise InvalidInputError("Ledger update failed")
