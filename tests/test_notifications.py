"""Email rendering and delivery tests."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
import resend
from fastapi import BackgroundTasks

from openhouse.config import settings
from openhouse.emails import templates
from openhouse.schemas.gift import parse_gift
from openhouse.schemas.user import AgentProfile
from openhouse.services.notification_service import NotificationService

AGENT = AgentProfile(
    id="agent-1",
    name="Jamie <Rivera>",
    email="jamie@example.com",
    title="Realtor",
    brokerage_name="Elm Realty",
    phone="555-0100",
    photo_url="https://cdn.example.com/jamie.png",
    brokerage_logo_url="https://cdn.example.com/elm.png",
)


def _sent_gift(claim_url: str = "https://gft.bt/abc"):
    return parse_gift(
        {
            "id": "gift-1",
            "user_id": "agent-1",
            "recipient_name": "Pat",
            "recipient_email": "pat@example.com",
            "brand_code": "amazonUS",
            "amount_in_cents": 2500,
            "status": "Sent",
            "claim_url": claim_url,
            "sent_at": datetime(2026, 10, 1, tzinfo=UTC),
            "created_at": datetime(2026, 10, 1, tzinfo=UTC),
        }
    )


@pytest.fixture
def email_configured(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    monkeypatch.setattr(settings, "resend_api_key", "re_test")
    monkeypatch.setattr(settings, "email_from_address", "gifts@ratemyopenhouse.com")
    sent: list[dict] = []
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "m1"})
    return sent


def test_gift_email_html_escapes_and_links() -> None:
    html = templates.gift_email_html(
        recipient_name="Pat <b>",
        sender=AGENT,
        brand_code="amazonUS",
        amount_in_cents=2500,
        claim_url="https://gft.bt/abc?x=1&y=2",
        message="See you soon",
        open_house_address="12 Elm St",
    )

    assert "$25.00 Amazon US gift card" in html
    assert "Pat &lt;b&gt;" in html
    assert "Jamie &lt;Rivera&gt;" in html
    assert 'href="https://gft.bt/abc?x=1&amp;y=2"' in html
    assert "12 Elm St" in html
    assert "Elm Realty" in html
    assert "Brokerage Logo" in html
    assert "Personal Logo" not in html


def test_lead_and_low_balance_templates_link_to_site() -> None:
    lead_html = templates.new_lead_email_html(
        AGENT, "Lee", "12 Elm St", "https://ratemyopenhouse.com/", lead_phone="555-0199"
    )
    low_html = templates.low_balance_email_html(AGENT, 1234, "https://ratemyopenhouse.com")

    assert "https://ratemyopenhouse.com/user/my-leads" in lead_html
    assert "555-0199" in lead_html
    assert "Email:" not in lead_html
    assert "https://ratemyopenhouse.com/user/billing" in low_html
    assert "$12.34" in low_html


def test_unconfigured_transport_is_a_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "resend_api_key", "")

    def fail(params):
        raise AssertionError("should not send")

    monkeypatch.setattr(resend.Emails, "send", fail)

    assert NotificationService().send_gift_email(_sent_gift(), AGENT) is False


def test_gift_email_delivery(email_configured: list[dict]) -> None:
    assert NotificationService().send_gift_email(_sent_gift(), AGENT) is True

    [params] = email_configured
    assert params["to"] == ["pat@example.com"]
    assert params["reply_to"] == "jamie@example.com"
    assert params["from"] == "Jamie <Rivera> <gifts@ratemyopenhouse.com>"
    assert params["subject"] == "A gift from Jamie <Rivera>"


def test_transport_errors_are_swallowed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "resend_api_key", "re_test")
    monkeypatch.setattr(settings, "email_from_address", "gifts@ratemyopenhouse.com")

    def boom(params):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(resend.Emails, "send", boom)

    assert NotificationService().send_low_balance_email(AGENT, 100) is False


def test_low_balance_threshold(email_configured: list[dict]) -> None:
    service = NotificationService()

    assert service.notify_if_low_balance(AGENT, 2500) is False
    assert service.notify_if_low_balance(AGENT, 2499) is True
    assert [params["subject"] for params in email_configured] == [
        "Your RateMyOpenHouse Balance is Low"
    ]


def test_submit_defers_to_background_tasks() -> None:
    calls: list[int] = []
    tasks = BackgroundTasks()
    service = NotificationService(tasks)

    service.submit(calls.append, 1)

    assert calls == []
    assert len(tasks.tasks) == 1


def test_submit_inline_logs_errors() -> None:
    def broken() -> None:
        raise ValueError("nope")

    NotificationService().submit(broken)
