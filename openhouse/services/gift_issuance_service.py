"""Gift issuance and settlement workflow.

Two flows mint claim links:

* Interactive issuance debits the agent first (atomically with the gift
  insert), then asks Giftbit for a link. A provider failure leaves the gift
  ``Created`` without a link and with ``error_message`` set; operators either
  retry with the same gift id or refund. There is no automatic refund because
  Giftbit may have issued the reward even though the call failed.
* Deferred settlement handles ``Pending`` gifts queued by lead automation. It
  asks Giftbit first and only debits once a link exists, so a provider
  failure costs the agent nothing.

Giftbit calls never run inside the ledger transaction.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from openhouse.clients.giftbit import GiftbitClient
from openhouse.config import settings
from openhouse.schemas.gift import (
    CreatedGift,
    Gift,
    GiftStatus,
    GiftType,
    PendingGift,
    SentGift,
)
from openhouse.schemas.user import AgentProfile
from openhouse.services.catalog_service import CatalogService
from openhouse.services.common import SupabaseService
from openhouse.services.gift_record_service import GiftRecordService
from openhouse.services.ledger_service import LedgerService
from openhouse.services.notification_service import NotificationService
from openhouse.utils.errors import (
    AppError,
    ConfigurationError,
    ConflictError,
    InsufficientFundsError,
    InvalidInputError,
    ProviderError,
    ProviderRequestFailedError,
)
from openhouse.utils.formatting import format_cents, humanize_brand_code
from openhouse.utils.time import minutes_ago, now_utc
from supabase import Client

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS_MESSAGE = "Insufficient funds."
UNCANCELLABLE_PROVIDER_STATUSES = frozenset({"REDEEMED", "CANCELLED", "CANCELED"})


class GiftIssuanceService:
    """Reserve funds, mint claim links, and keep gifts and balances consistent."""

    def __init__(
        self,
        client: Client,
        provider: GiftbitClient,
        notifications: NotificationService | None = None,
    ) -> None:
        self.db = SupabaseService(client)
        self.gifts = GiftRecordService(client)
        self.ledger = LedgerService(client)
        self.catalog = CatalogService(client, provider)
        self.provider = provider
        self.notifications = notifications or NotificationService()

    # Interactive issuance

    def create_gift_link(
        self,
        user_id: str,
        recipient_name: str,
        recipient_email: str,
        brand_code: str,
        amount_in_cents: int,
        region_code: str | None = None,
        gift_id: str | None = None,
    ) -> CreatedGift:
        """Debit the agent and mint a claim link for a new gift.

        Raises:
            InvalidInputError: bad input; nothing was written.
            InsufficientFundsError: balance too low; nothing was written.
            ProviderError: the debit and the gift row exist, the link does not.
        """
        if not user_id:
            raise InvalidInputError("User is required")
        brand_code = (brand_code or "").strip()
        if not brand_code:
            raise InvalidInputError("Brand code is required")
        if amount_in_cents < settings.min_gift_amount_cents:
            raise InvalidInputError(
                f"Gift amount must be at least {format_cents(settings.min_gift_amount_cents)}"
            )
        if not recipient_name.strip() or "@" not in recipient_email:
            raise InvalidInputError("Recipient name and a valid email are required")

        brand = self.catalog.find_brand(brand_code, region_code)
        if brand is None:
            raise InvalidInputError(f"Brand {brand_code} is not available")
        if not brand.accepts(amount_in_cents):
            raise InvalidInputError(
                f"{format_cents(amount_in_cents)} is not a valid amount for {brand.name}"
            )

        payload = {
            "id": gift_id or str(uuid4()),
            "user_id": user_id,
            "recipient_name": recipient_name.strip(),
            "recipient_email": recipient_email.strip().lower(),
            "brand_code": brand_code,
            "brand_name": brand.name,
            "amount_in_cents": amount_in_cents,
            "type": GiftType.MANUAL.value,
            "status": GiftStatus.CREATED.value,
            "claim_url": None,
            "created_at": now_utc().isoformat(),
        }
        result = self.ledger.reserve(
            user_id,
            amount_in_cents,
            payload,
            description=f"{brand.name} gift card for {payload['recipient_name']}",
        )
        logger.info(
            "Reserved %s for gift %s (user %s, balance now %s)",
            amount_in_cents,
            payload["id"],
            user_id,
            result.balance_cents,
        )
        self._notify_low_balance(user_id, result.balance_cents)
        return self._mint_link(result.gift)  # type: ignore[arg-type]

    def retry_gift_link(self, gift_id: str, user_id: str | None = None) -> CreatedGift:
        """Ask Giftbit again for a debited gift whose link was never returned."""
        gift = self._load(gift_id, user_id)
        if not isinstance(gift, CreatedGift) or not gift.needs_link:
            raise ConflictError(f"Gift is {gift.status} and does not need a new link")
        return self._mint_link(gift)

    def send_gift(self, gift_id: str, user_id: str, message: str | None = None) -> SentGift:
        """Mark a minted gift as sent and email the recipient."""
        gift = self.gifts.get_for_user(gift_id, user_id)
        if not isinstance(gift, CreatedGift) or gift.needs_link:
            raise ConflictError(f"Gift is {gift.status} and cannot be sent")

        sent = self.gifts.transition(
            gift.id,
            GiftStatus.CREATED.value,
            {"status": GiftStatus.SENT.value, "sent_at": now_utc().isoformat()},
        )
        agent = self.db.get_agent(user_id)
        self.notifications.submit(
            self.notifications.send_gift_email,
            sent,
            agent,
            message,
            self._open_house_address(sent.open_house_id),
        )
        return sent  # type: ignore[return-value]

    def _mint_link(self, gift: CreatedGift) -> CreatedGift:
        try:
            link = self.provider.create_claim_link(gift.id, gift.brand_code, gift.amount_in_cents)
        except (ProviderError, ConfigurationError) as exc:
            logger.error("Claim link failed for debited gift %s: %s", gift.id, exc.message)
            self._record_link_error(gift, exc.message)
            raise

        return self.gifts.transition(  # type: ignore[return-value]
            gift.id,
            GiftStatus.CREATED.value,
            {"claim_url": link.claim_url, "short_id": link.short_id, "error_message": None},
        )

    def _record_link_error(self, gift: CreatedGift, message: str) -> None:
        try:
            self.gifts.transition(gift.id, GiftStatus.CREATED.value, {"error_message": message})
        except AppError:
            logger.exception("Could not record link failure on gift %s", gift.id)

    # Queued gifts and deferred settlement

    def queue_gift(
        self,
        user_id: str,
        recipient_name: str,
        recipient_email: str,
        brand_code: str,
        amount_in_cents: int,
        brand_name: str | None = None,
        open_house_id: str | None = None,
        lead_id: str | None = None,
    ) -> PendingGift:
        """Record a gift for later settlement without touching the balance."""
        if amount_in_cents < settings.min_gift_amount_cents:
            raise InvalidInputError(
                f"Gift amount must be at least {format_cents(settings.min_gift_amount_cents)}"
            )
        gift = self.gifts.create(
            {
                "id": str(uuid4()),
                "user_id": user_id,
                "recipient_name": recipient_name,
                "recipient_email": recipient_email,
                "brand_code": brand_code,
                "brand_name": brand_name or humanize_brand_code(brand_code),
                "amount_in_cents": amount_in_cents,
                "type": GiftType.AUTO.value,
                "status": GiftStatus.PENDING.value,
                "claim_url": None,
                "open_house_id": open_house_id,
                "lead_id": lead_id,
                "created_at": now_utc().isoformat(),
            }
        )
        logger.info("Queued gift %s for user %s", gift.id, user_id)
        return gift  # type: ignore[return-value]

    def process_gift(self, gift_id: str) -> Gift:
        """Settle one queued gift: mint its link, then debit and mark it sent.

        Gifts that are no longer ``Pending`` are returned untouched, so
        duplicate triggers are harmless. Any failure after loading the gift
        ends in ``Failed`` rather than leaving it queued.
        """
        gift = self.gifts.get(gift_id)
        if not isinstance(gift, PendingGift):
            logger.info("Gift %s is %s; nothing to settle", gift.id, gift.status)
            return gift

        try:
            return self._settle(gift)
        except Exception as exc:
            logger.exception("Failed to process gift %s", gift.id)
            message = exc.message if isinstance(exc, AppError) else str(exc)
            return self._mark_failed(gift, message or exc.__class__.__name__)

    def settle_pending_gifts(self, limit: int = 50) -> list[Gift]:
        """Run settlement for queued gifts, oldest first."""
        pending = self.gifts.list_by_status(GiftStatus.PENDING, limit=limit)
        results = [self.process_gift(gift.id) for gift in pending]
        if results:
            counts: dict[str, int] = {}
            for gift in results:
                counts[gift.status] = counts.get(gift.status, 0) + 1
            logger.info("Settled %s pending gifts: %s", len(results), counts)
        return results

    def _settle(self, gift: PendingGift) -> Gift:
        agent = self.db.get_agent(gift.user_id)
        if agent.available_balance_cents < gift.amount_in_cents:
            logger.info(
                "Gift %s needs %s but user %s has %s",
                gift.id,
                gift.amount_in_cents,
                gift.user_id,
                agent.available_balance_cents,
            )
            return self._mark_failed(gift, INSUFFICIENT_FUNDS_MESSAGE)

        try:
            link = self.provider.create_claim_link(gift.id, gift.brand_code, gift.amount_in_cents)
        except ProviderError as exc:
            logger.warning("Claim link failed for queued gift %s: %s", gift.id, exc.message)
            return self._mark_failed(gift, exc.message)

        try:
            result = self.ledger.debit_for_gift(
                gift.user_id,
                gift.id,
                gift.amount_in_cents,
                gift_update={
                    "status": GiftStatus.SENT.value,
                    "claim_url": link.claim_url,
                    "short_id": link.short_id,
                    "sent_at": now_utc().isoformat(),
                },
                expected_status=GiftStatus.PENDING.value,
                description=f"{gift.brand_name or gift.brand_code} gift card for {gift.recipient_name}",
            )
        except InsufficientFundsError:
            failed = self._mark_failed(gift, INSUFFICIENT_FUNDS_MESSAGE)
            if failed.status == GiftStatus.FAILED:
                self._void_unpaid_link(gift.id)
            return failed
        except ConflictError:
            current = self.gifts.get(gift.id)
            if current.status != GiftStatus.SENT:
                logger.warning("Gift %s became %s while settling", gift.id, current.status)
                self._void_unpaid_link(gift.id)
            else:
                logger.info("Gift %s was settled concurrently", gift.id)
            return current

        sent = result.gift
        logger.info("Gift %s sent; user %s balance now %s", gift.id, gift.user_id, result.balance_cents)
        self.notifications.submit(
            self.notifications.send_gift_email,
            sent,
            agent,
            None,
            self._open_house_address(gift.open_house_id),
        )
        self.notifications.notify_if_low_balance(agent, result.balance_cents)
        return sent  # type: ignore[return-value]

    def _mark_failed(self, gift: Gift, message: str) -> Gift:
        try:
            return self.gifts.transition(
                gift.id,
                GiftStatus.PENDING.value,
                {"status": GiftStatus.FAILED.value, "error_message": message},
            )
        except ConflictError:
            return self.gifts.get(gift.id)

    def _void_unpaid_link(self, gift_id: str) -> None:
        try:
            self.provider.cancel(gift_id)
        except AppError:
            logger.exception("Could not void unpaid Giftbit reward %s", gift_id)

    # Cancellation, refunds and reconciliation

    def cancel_gift(self, gift_id: str, actor_id: str) -> Gift:
        """Void a gift at Giftbit and refund the agent when it was debited.

        Rejected without any local change when Giftbit reports the reward as
        redeemed or already cancelled.
        """
        gift = self.gifts.get(gift_id)
        if gift.is_terminal:
            raise ConflictError(f"Gift is already {gift.status}")

        update = {"status": GiftStatus.CANCELLED.value, "cancelled_at": now_utc().isoformat()}
        if isinstance(gift, PendingGift):
            return self.gifts.transition(gift.id, GiftStatus.PENDING.value, update)

        reward = self._provider_reward(gift)
        if reward is not None:
            provider_status = str(reward.get("status") or "").upper()
            if provider_status in UNCANCELLABLE_PROVIDER_STATUSES:
                raise ConflictError(
                    f"Gift cannot be cancelled; provider status is {provider_status}",
                    code="GIFT_NOT_CANCELLABLE",
                )
            self.provider.cancel(gift.id)

        logger.info("Gift %s cancelled by %s", gift.id, actor_id)
        return self._refund_cancelled(gift, actor_id, update)

    def _refund_cancelled(self, gift: Gift, actor_id: str, update: dict[str, Any]) -> Gift:
        # The reward is already void at Giftbit; a debited gift that moved on
        # (Created to Sent) must still be credited against its new status.
        for attempt in range(3):
            try:
                result = self.ledger.credit(
                    gift.user_id,
                    gift.amount_in_cents,
                    description=f"Refund for cancelled gift to {gift.recipient_name}",
                    created_by_id=actor_id,
                    reference_id=gift.id,
                    gift_update=update,
                    expected_status=gift.status,
                )
                return result.gift  # type: ignore[return-value]
            except ConflictError as exc:
                if exc.code != "GIFT_STATE_CHANGED":
                    raise
                current = self.gifts.get(gift.id)
                if current.is_terminal or not current.is_debited:
                    raise
                logger.warning(
                    "Gift %s moved from %s to %s during cancel; retrying refund (attempt %s)",
                    gift.id,
                    gift.status,
                    current.status,
                    attempt + 1,
                )
                gift = current
        raise ConflictError("Gift status kept changing during cancel", code="GIFT_STATE_CHANGED")

    def refund_gift(self, gift_id: str, actor_id: str) -> Gift:
        """Refund a debited gift whose claim link was never issued."""
        gift = self.gifts.get(gift_id)
        if not isinstance(gift, CreatedGift) or not gift.needs_link:
            raise ConflictError(f"Gift is {gift.status} and cannot be refunded")
        if self._provider_reward(gift) is not None:
            raise ConflictError(
                "Giftbit issued this reward; retry the link instead of refunding",
                code="GIFT_ISSUED_AT_PROVIDER",
            )

        reason = gift.error_message or "claim link was never issued"
        result = self.ledger.credit(
            gift.user_id,
            gift.amount_in_cents,
            description=f"Refund for unissued gift to {gift.recipient_name}",
            created_by_id=actor_id,
            reference_id=gift.id,
            gift_update={"status": GiftStatus.FAILED.value, "error_message": f"Refunded: {reason}"},
            expected_status=GiftStatus.CREATED.value,
        )
        logger.info("Refunded %s to user %s for gift %s", gift.amount_in_cents, gift.user_id, gift.id)
        return result.gift  # type: ignore[return-value]

    def find_stalled_gifts(self, older_than_minutes: int | None = None) -> list[Gift]:
        """Return debited gifts still missing a link and long-queued gifts."""
        cutoff = minutes_ago(older_than_minutes or settings.stalled_gift_minutes)
        unlinked = [
            gift
            for gift in self.gifts.list_created_before(GiftStatus.CREATED, cutoff)
            if isinstance(gift, CreatedGift) and gift.needs_link
        ]
        queued = self.gifts.list_created_before(GiftStatus.PENDING, cutoff)
        return unlinked + queued

    def provider_report(self, limit: int = 100) -> list[dict[str, Any]]:
        """Pair Giftbit's reward statuses with the local gift status."""
        rewards = self.provider.list_rewards(limit)
        ids = [str(reward["id"]) for reward in rewards if reward.get("id")]
        local: dict[str, dict[str, Any]] = {}
        if ids:
            rows = self.db.execute(
                self.db.client.table("gifts").select("id,status,user_id").in_("id", ids),
                default=[],
            )
            local = {str(row["id"]): row for row in rows}

        report = []
        for reward in rewards:
            reward_id = str(reward.get("id") or "")
            row = local.get(reward_id)
            report.append(
                {
                    "id": reward_id,
                    "provider_status": reward.get("status"),
                    "local_status": row["status"] if row else None,
                    "user_id": str(row["user_id"]) if row else None,
                    "price_in_cents": reward.get("price_in_cents"),
                }
            )
        return report

    # Helpers

    def _load(self, gift_id: str, user_id: str | None) -> Gift:
        if user_id:
            return self.gifts.get_for_user(gift_id, user_id)
        return self.gifts.get(gift_id)

    def _provider_reward(self, gift: Gift) -> dict[str, Any] | None:
        """Return Giftbit's reward, or None when a link-less gift never reached it."""
        try:
            return self.provider.get_reward(gift.id)
        except ProviderRequestFailedError as exc:
            if exc.provider_status == 404 and isinstance(gift, CreatedGift) and gift.needs_link:
                return None
            raise

    def _notify_low_balance(self, user_id: str, balance_cents: int) -> None:
        if balance_cents >= settings.low_balance_threshold_cents:
            return
        try:
            agent: AgentProfile = self.db.get_agent(user_id)
        except AppError:
            logger.exception("Could not load user %s for low balance email", user_id)
            return
        self.notifications.notify_if_low_balance(agent, balance_cents)

    def _open_house_address(self, open_house_id: str | None) -> str | None:
        if not open_house_id:
            return None
        try:
            rows = self.db.select_many(
                "open_houses",
                filters={"id": open_house_id},
                columns="id,address",
                limit=1,
            )
        except AppError:
            logger.exception("Could not load open house %s", open_house_id)
            return None
        return rows[0]["address"] if rows else None
