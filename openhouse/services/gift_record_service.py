"""Gift record persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from openhouse.schemas.gift import Gift, GiftStatus, parse_gift
from openhouse.services.common import SupabaseService
from openhouse.utils.errors import ConflictError, NotFoundError
from supabase import Client

TABLE = "gifts"


class GiftRecordService:
    """Read and transition gift rows.

    Status changes are only made by the issuance workflow, cancellation and
    refunds; each one is conditioned on the status the caller last saw.
    """

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def create(self, payload: dict[str, Any]) -> Gift:
        """Insert a gift row that does not touch the ledger (queued gifts)."""
        return parse_gift(self.db.insert_one(TABLE, payload))

    def get(self, gift_id: str) -> Gift:
        """Return one gift by id."""
        return parse_gift(self.db.select_one(TABLE, {"id": gift_id}, not_found_label="Gift"))

    def exists(self, gift_id: str) -> bool:
        return bool(self.db.select_many(TABLE, filters={"id": gift_id}, limit=1))

    def get_for_user(self, gift_id: str, user_id: str) -> Gift:
        """Return one gift owned by ``user_id``."""
        rows = self.db.select_many(TABLE, filters={"id": gift_id, "user_id": user_id}, limit=1)
        if not rows:
            raise NotFoundError("Gift")
        return parse_gift(rows[0])

    def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Gift]:
        """Return an agent's gifts newest-first."""
        rows = self.db.select_many(
            TABLE,
            filters={"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return [parse_gift(row) for row in rows]

    def list_by_status(self, status: GiftStatus, limit: int = 100) -> list[Gift]:
        """Return gifts in one status, oldest first."""
        rows = self.db.select_many(
            TABLE,
            filters={"status": status.value},
            order_by="created_at",
            limit=limit,
        )
        return [parse_gift(row) for row in rows]

    def list_created_before(
        self,
        status: GiftStatus,
        cutoff: datetime,
        limit: int = 100,
    ) -> list[Gift]:
        """Return gifts in ``status`` created before ``cutoff``, oldest first."""
        rows = self.db.execute(
            self.db.client.table(TABLE)
            .select("*")
            .eq("status", status.value)
            .lt("created_at", cutoff.isoformat())
            .order("created_at")
            .limit(limit),
            default=[],
        )
        return [parse_gift(row) for row in rows]

    def transition(self, gift_id: str, expected_status: str, payload: dict[str, Any]) -> Gift:
        """Update a gift only if it is still in ``expected_status``."""
        rows = self.db.update(TABLE, {"id": gift_id, "status": expected_status}, payload)
        if not rows:
            current = self.get(gift_id)
            raise ConflictError(
                f"Gift is {current.status}, expected {expected_status}",
                code="GIFT_STATE_CHANGED",
            )
        return parse_gift(rows[0])
