"""Best-effort email notifications.

Nothing in this module raises to its caller: a failed or unconfigured email
must never undo or block a balance change that already committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import resend
from fastapi import BackgroundTasks

from openhouse.config import settings
from openhouse.emails import templates
from openhouse.schemas.gift import Gift
from openhouse.schemas.lead import Lead
from openhouse.schemas.user import AgentProfile

logger = logging.getLogger(__name__)


class NotificationService:
    """Render and deliver gift, lead and balance emails.

    When bound to a request's ``BackgroundTasks`` submitted work runs after the
    response is sent; otherwise (scheduled jobs, scripts) it runs inline.
    """

    def __init__(self, background_tasks: BackgroundTasks | None = None) -> None:
        self.background_tasks = background_tasks

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Schedule ``func`` fire-and-forget; its errors are logged, never raised."""
        if self.background_tasks is not None:
            self.background_tasks.add_task(_run_safely, func, *args, **kwargs)
            return
        _run_safely(func, *args, **kwargs)

    def send_gift_email(
        self,
        gift: Gift,
        sender: AgentProfile,
        message: str | None = None,
        open_house_address: str | None = None,
    ) -> bool:
        """Send the recipient their claim link."""
        claim_url = getattr(gift, "claim_url", None)
        if not claim_url:
            logger.warning("Gift %s has no claim link; skipping gift email", gift.id)
            return False

        html = templates.gift_email_html(
            recipient_name=gift.recipient_name,
            sender=sender,
            brand_code=gift.brand_code,
            brand_name=gift.brand_name,
            amount_in_cents=gift.amount_in_cents,
            claim_url=claim_url,
            message=message,
            open_house_address=open_house_address,
        )
        return self._deliver(
            to=gift.recipient_email,
            subject=templates.gift_email_subject(sender, open_house_address),
            html=html,
            from_name=sender.name or settings.email_from_name,
            reply_to=sender.email or None,
            label=f"gift {gift.id}",
        )

    def send_new_lead_email(self, agent: AgentProfile, lead: Lead, open_house_address: str) -> bool:
        """Tell the agent a visitor left their details."""
        html = templates.new_lead_email_html(
            agent=agent,
            lead_name=lead.name,
            lead_email=lead.email,
            lead_phone=lead.phone,
            open_house_address=open_house_address,
            site_url=settings.site_url,
        )
        return self._deliver(
            to=agent.email,
            subject=f"New Lead from {open_house_address}",
            html=html,
            label=f"new lead {lead.id}",
        )

    def send_low_balance_email(self, agent: AgentProfile, balance_cents: int) -> bool:
        """Warn the agent that gift automations may stop."""
        html = templates.low_balance_email_html(agent, balance_cents, settings.site_url)
        return self._deliver(
            to=agent.email,
            subject="Your RateMyOpenHouse Balance is Low",
            html=html,
            label=f"low balance {agent.id}",
        )

    def notify_if_low_balance(self, agent: AgentProfile, balance_cents: int) -> bool:
        """Submit a low-balance email when ``balance_cents`` is under the threshold."""
        if balance_cents >= settings.low_balance_threshold_cents:
            return False
        self.submit(self.send_low_balance_email, agent, balance_cents)
        return True

    def _deliver(
        self,
        to: str,
        subject: str,
        html: str,
        label: str,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        if not settings.email_configured:
            logger.warning("Email transport not configured. Skipping %s email.", label)
            return False
        if not to:
            logger.warning("No recipient address. Skipping %s email.", label)
            return False

        params: dict[str, Any] = {
            "from": f"{from_name or settings.email_from_name} <{settings.email_from_address}>",
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if reply_to:
            params["reply_to"] = reply_to

        try:
            resend.api_key = settings.resend_api_key
            response = resend.Emails.send(params)
        except Exception:
            logger.exception("Error sending %s email", label)
            return False

        message_id = response.get("id") if isinstance(response, dict) else None
        logger.info("Sent %s email (message %s)", label, message_id)
        return True


def _run_safely(func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    try:
        func(*args, **kwargs)
    except Exception:
        logger.exception("Background task %s failed", getattr(func, "__name__", func))
