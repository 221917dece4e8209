"""Ledger schemas."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class TransactionType(StrEnum):
    """Direction of a ledger entry."""

    CREDIT = "Credit"
    DEBIT = "Debit"


class TransactionResponse(BaseModel):
    """A single append-only ledger entry."""

    id: str
    user_id: str
    type: TransactionType
    amount_cents: int
    description: str
    reference_id: str | None = None
    created_by_id: str | None = None
    created_at: datetime


class BalanceResponse(BaseModel):
    """Current balance with the most recent ledger entries."""

    available_balance_cents: int
    transactions: list[TransactionResponse]
    total: int


class CreditBalanceRequest(BaseModel):
    """Admin request to add funds to an agent's balance."""

    amount_cents: int = Field(..., gt=0)
    description: str = Field(default="Funds added", min_length=1, max_length=500)
