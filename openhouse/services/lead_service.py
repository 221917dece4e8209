"""Lead capture and gift automation trigger."""

from __future__ import annotations

import logging

from openhouse.schemas.gift import Gift
from openhouse.schemas.lead import Lead, OpenHouse
from openhouse.services.common import SupabaseService
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.utils.errors import AppError, InvalidInputError
from supabase import Client

logger = logging.getLogger(__name__)


class LeadService:
    """Store visitor leads and queue the open house's automatic gift."""

    def __init__(self, client: Client, issuance: GiftIssuanceService) -> None:
        self.db = SupabaseService(client)
        self.issuance = issuance
        self.notifications = issuance.notifications

    def get_open_house(self, open_house_id: str) -> OpenHouse:
        row = self.db.select_one("open_houses", {"id": open_house_id}, not_found_label="Open house")
        return OpenHouse.model_validate(row)

    def capture_lead(
        self,
        open_house_id: str,
        name: str,
        email: str | None = None,
        phone: str | None = None,
        notes: str | None = None,
    ) -> tuple[Lead, Gift | None]:
        """Record a lead, email the agent and queue a gift when automation is on.

        The lead row is kept even if queueing the gift fails; settlement of a
        queued gift runs after the caller has its response.
        """
        name = name.strip()
        if not name:
            raise InvalidInputError("Name is required")
        email = (email or "").strip().lower() or None
        if email and "@" not in email:
            raise InvalidInputError("Email address is invalid")

        open_house = self.get_open_house(open_house_id)
        lead = Lead.model_validate(
            self.db.insert_one(
                "leads",
                {
                    "user_id": open_house.user_id,
                    "open_house_id": open_house.id,
                    "name": name,
                    "email": email,
                    "phone": phone,
                    "notes": notes,
                },
            )
        )
        logger.info("Captured lead %s for open house %s", lead.id, open_house.id)

        agent = self.db.get_agent(open_house.user_id)
        self.notifications.submit(
            self.notifications.send_new_lead_email,
            agent,
            lead,
            open_house.address,
        )

        if not open_house.gift_automation_ready or not lead.email:
            return lead, None

        try:
            gift = self.issuance.queue_gift(
                user_id=open_house.user_id,
                recipient_name=lead.name,
                recipient_email=lead.email,
                brand_code=open_house.gift_brand_code or "",
                amount_in_cents=open_house.gift_amount_in_cents or 0,
                brand_name=open_house.gift_brand_name,
                open_house_id=open_house.id,
                lead_id=lead.id,
            )
        except AppError:
            logger.exception("Could not queue automatic gift for lead %s", lead.id)
            return lead, None

        self.notifications.submit(self.issuance.process_gift, gift.id)
        return lead, gift
