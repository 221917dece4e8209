"""Gift variant parsing tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from openhouse.schemas.gift import CancelledGift, CreatedGift, FailedGift, PendingGift, parse_gift

BASE = {
    "id": "gift-1",
    "user_id": "agent-1",
    "recipient_name": "Pat",
    "recipient_email": "pat@example.com",
    "brand_code": "amazonUS",
    "amount_in_cents": 2500,
    "created_at": "2026-10-01T12:00:00+00:00",
}


def test_status_selects_variant() -> None:
    assert isinstance(parse_gift({**BASE, "status": "Pending"}), PendingGift)
    created = parse_gift({**BASE, "status": "Created", "claim_url": None})
    assert isinstance(created, CreatedGift)
    assert created.needs_link and created.is_debited
    failed = parse_gift({**BASE, "status": "Failed", "error_message": None})
    assert isinstance(failed, FailedGift)
    assert failed.error_message == "Gift processing failed"
    assert failed.is_terminal
    cancelled = parse_gift(
        {**BASE, "status": "Cancelled", "cancelled_at": "2026-10-02T00:00:00+00:00"}
    )
    assert isinstance(cancelled, CancelledGift)


def test_sent_gift_requires_claim_link() -> None:
    with pytest.raises(ValidationError):
        parse_gift({**BASE, "status": "Sent", "sent_at": "2026-10-01T12:05:00+00:00"})


def test_pending_gift_cannot_carry_link() -> None:
    with pytest.raises(ValidationError):
        parse_gift({**BASE, "status": "Pending", "claim_url": "https://gft.bt/x"})


def test_unknown_status_and_non_positive_amount_rejected() -> None:
    with pytest.raises(ValidationError):
        parse_gift({**BASE, "status": "Lost"})
    with pytest.raises(ValidationError):
        parse_gift({**BASE, "status": "Pending", "amount_in_cents": 0})
