"""Deferred settlement, cancellation and reconciliation tests."""

from __future__ import annotations

import pytest
from fakes import FakeGiftbit, FakeSupabase, RecordingNotifications

from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.utils.errors import ConflictError, ProviderUnavailableError


def _queue(service: GiftIssuanceService, amount: int = 2500, email: str = "lee@example.com"):
    return service.queue_gift(
        user_id="agent-1",
        recipient_name="Lee Visitor",
        recipient_email=email,
        brand_code="amazonUS",
        amount_in_cents=amount,
    )


def test_process_gift_mints_then_debits(
    issuance: GiftIssuanceService,
    db: FakeSupabase,
    giftbit: FakeGiftbit,
    notifications: RecordingNotifications,
) -> None:
    queued = _queue(issuance)
    assert queued.status == "Pending"
    assert queued.brand_name == "Amazon US"
    assert db.balance() == 10000

    sent = issuance.process_gift(queued.id)

    assert sent.status == "Sent"
    assert sent.claim_url == f"https://gft.bt/{queued.id}"
    assert db.balance() == 7500
    assert [row["reference_id"] for row in db.rows("transactions", type="Debit")] == [queued.id]
    assert f"gift {queued.id}" in notifications.labels()


def test_process_gift_is_idempotent(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    queued = _queue(issuance)

    first = issuance.process_gift(queued.id)
    second = issuance.process_gift(queued.id)

    assert first.status == second.status == "Sent"
    assert giftbit.link_requests == [queued.id]
    assert len(db.rows("transactions")) == 1
    assert db.balance() == 7500


def test_insufficient_balance_fails_without_provider_call(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    db.set_balance("agent-1", 1000)
    queued = _queue(issuance)

    result = issuance.process_gift(queued.id)

    assert result.status == "Failed"
    assert result.error_message == "Insufficient funds."
    assert giftbit.link_requests == []
    assert db.balance() == 1000


def test_provider_failure_never_debits(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    giftbit.link_error = ProviderUnavailableError("Gift provider request timed out")
    queued = _queue(issuance)

    result = issuance.process_gift(queued.id)

    assert result.status == "Failed"
    assert result.error_message == "Gift provider request timed out"
    assert db.balance() == 10000
    assert db.rows("transactions") == []


def test_balance_drop_after_link_voids_reward(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    """Funds spent elsewhere while Giftbit answered: fail and void the link."""
    queued = _queue(issuance)
    giftbit.on_create_link = lambda gift_id: db.set_balance("agent-1", 100)

    result = issuance.process_gift(queued.id)

    assert result.status == "Failed"
    assert giftbit.cancelled == [queued.id]
    assert db.balance() == 100
    assert db.rows("transactions") == []


def test_unexpected_error_marks_gift_failed(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    queued = _queue(issuance)

    def explode(gift_id: str) -> None:
        raise RuntimeError("socket closed")

    giftbit.on_create_link = explode

    result = issuance.process_gift(queued.id)

    assert result.status == "Failed"
    assert result.error_message == "socket closed"
    assert db.balance() == 10000


def test_settle_pending_gifts_stops_at_available_funds(
    issuance: GiftIssuanceService, db: FakeSupabase
) -> None:
    db.set_balance("agent-1", 3000)
    first = _queue(issuance, amount=2000, email="first@example.com")
    db.row("gifts", first.id)["created_at"] = "2026-01-01T00:00:00+00:00"
    second = _queue(issuance, amount=2000, email="second@example.com")

    results = issuance.settle_pending_gifts()

    assert [(gift.id, gift.status) for gift in results] == [
        (first.id, "Sent"),
        (second.id, "Failed"),
    ]
    assert db.balance() == 1000


def test_cancel_sent_gift_refunds_agent(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    sent = issuance.process_gift(_queue(issuance).id)

    cancelled = issuance.cancel_gift(sent.id, actor_id="admin-1")

    assert cancelled.status == "Cancelled"
    assert cancelled.cancelled_at is not None
    assert giftbit.cancelled == [sent.id]
    assert db.balance() == 10000
    [credit] = db.rows("transactions", type="Credit")
    assert credit["reference_id"] == sent.id


@pytest.mark.parametrize("provider_status", ["REDEEMED", "CANCELLED"])
def test_cancel_rejected_for_redeemed_or_voided_reward(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit, provider_status: str
) -> None:
    sent = issuance.process_gift(_queue(issuance).id)
    giftbit.rewards[sent.id]["status"] = provider_status

    with pytest.raises(ConflictError):
        issuance.cancel_gift(sent.id, actor_id="admin-1")

    assert db.row("gifts", sent.id)["status"] == "Sent"
    assert giftbit.cancelled == []
    assert db.balance() == 7500


def test_cancel_pending_gift_is_local(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    queued = _queue(issuance)

    cancelled = issuance.cancel_gift(queued.id, actor_id="admin-1")

    assert cancelled.status == "Cancelled"
    assert giftbit.cancelled == []
    assert db.rows("transactions") == []
    assert issuance.process_gift(queued.id).status == "Cancelled"

    with pytest.raises(ConflictError):
        issuance.cancel_gift(queued.id, actor_id="admin-1")


def test_find_stalled_gifts_lists_unlinked_and_queued(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    old = "2026-01-01T00:00:00+00:00"
    queued = _queue(issuance)
    db.row("gifts", queued.id)["created_at"] = old
    linked = issuance.create_gift_link("agent-1", "Pat", "pat@example.com", "amazonUS", 1000)
    db.row("gifts", linked.id)["created_at"] = old
    db.insert_row(
        "gifts",
        {
            "id": "gift-stuck",
            "user_id": "agent-1",
            "recipient_name": "Sam",
            "recipient_email": "sam@example.com",
            "brand_code": "amazonUS",
            "amount_in_cents": 1000,
            "type": "Manual",
            "status": "Created",
            "error_message": "timeout",
            "created_at": old,
        },
    )

    stalled = issuance.find_stalled_gifts(older_than_minutes=30)

    assert sorted(gift.id for gift in stalled) == sorted(["gift-stuck", queued.id])


def test_provider_report_pairs_statuses(
    issuance: GiftIssuanceService, giftbit: FakeGiftbit
) -> None:
    sent = issuance.process_gift(_queue(issuance).id)
    giftbit.rewards["orphan"] = {"id": "orphan", "status": "SENT_AND_REDEEMABLE"}

    report = {row["id"]: row for row in issuance.provider_report()}

    assert report[sent.id]["local_status"] == "Sent"
    assert report[sent.id]["user_id"] == "agent-1"
    assert report["orphan"]["local_status"] is None


def test_cancel_during_settlement_voids_minted_link(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    """A Pending gift cancelled while Giftbit minted its link must not keep a live reward."""
    queued = _queue(issuance)
    giftbit.on_create_link = lambda gift_id: issuance.cancel_gift(gift_id, actor_id="admin-1")

    result = issuance.process_gift(queued.id)

    assert result.status == "Cancelled"
    assert giftbit.cancelled == [queued.id]
    assert giftbit.rewards[queued.id]["status"] == "CANCELLED"
    assert db.balance() == 10000
    assert db.rows("transactions") == []


def test_cancel_refunds_gift_sent_while_voiding(
    issuance: GiftIssuanceService, db: FakeSupabase, giftbit: FakeGiftbit
) -> None:
    """The agent is credited even when the gift moves from Created to Sent mid-cancel."""
    created = issuance.create_gift_link("agent-1", "Pat", "pat@example.com", "amazonUS", 2500)
    assert db.balance() == 7500
    void_at_giftbit = giftbit.cancel

    def send_then_void(gift_id: str) -> None:
        issuance.send_gift(gift_id, "agent-1")
        void_at_giftbit(gift_id)

    giftbit.cancel = send_then_void

    cancelled = issuance.cancel_gift(created.id, actor_id="admin-1")

    assert cancelled.status == "Cancelled"
    assert db.row("gifts", created.id)["status"] == "Cancelled"
    assert giftbit.cancelled == [created.id]
    assert db.balance() == 10000
    [credit] = db.rows("transactions", type="Credit")
    assert credit["reference_id"] == created.id
