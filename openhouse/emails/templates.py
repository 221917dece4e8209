"""Self-contained HTML bodies for transactional emails.

Every interpolated value is HTML-escaped; URLs come from Giftbit, the agent
profile, or ``SITE_URL``.
"""

from __future__ import annotations

from html import escape

from openhouse.schemas.user import AgentProfile
from openhouse.utils.formatting import format_cents, humanize_brand_code

LOGO_URL = (
    "https://firebasestorage.googleapis.com/v0/b/openhouse-dashboard.firebasestorage.app"
    "/o/RMOH%20Logo.png?alt=media"
)

_CARD_STYLE = (
    "border-collapse: collapse; background-color: #ffffff; border: 1px solid #cccccc; "
    "border-radius: 8px; box-shadow: 0 4px 8px rgba(0,0,0,0.1);"
)
_TEXT_STYLE = "color: #555555; font-size: 16px; line-height: 1.5;"
_BUTTON_STYLE = (
    "background-color: #3b82f6; color: #ffffff; padding: 15px 25px; text-decoration: none; "
    "border-radius: 5px; display: inline-block; font-weight: bold; font-size: 16px;"
)


def _document(title: str, body_rows: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
  <table border="0" cellpadding="0" cellspacing="0" width="100%">
    <tr>
      <td style="padding: 20px 0;">
        <table align="center" border="0" cellpadding="0" cellspacing="0" width="600" style="{_CARD_STYLE}">
{body_rows}
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def _button(href: str, label: str) -> str:
    return f"""<table border="0" cellpadding="0" cellspacing="0" width="100%" style="border-collapse: collapse; text-align: center; margin-top: 30px;">
  <tr><td><a href="{escape(href, quote=True)}" style="{_BUTTON_STYLE}">{escape(label)}</a></td></tr>
</table>"""


def _logo_row() -> str:
    return f"""<tr>
  <td align="center" style="padding: 20px; border-bottom: 1px solid #eeeeee;">
    <img src="{LOGO_URL}" alt="RateMyOpenHouse.com Logo" width="150" style="display: block;" />
  </td>
</tr>"""


def signature_html(agent: AgentProfile) -> str:
    """Render the agent's signature block: photo, contact lines and logos."""
    photo = ""
    if agent.photo_url:
        photo = (
            f'<td width="80" valign="top"><img src="{escape(agent.photo_url, quote=True)}" '
            f'alt="{escape(agent.name)}" width="80" height="80" '
            'style="display: block; border-radius: 50%;" /></td>'
            '<td style="font-size: 0; line-height: 0;" width="25">&nbsp;</td>'
        )

    lines = [f'<p style="margin: 0; color: #333333;"><strong>{escape(agent.name)}</strong></p>']
    for value in (agent.title, agent.brokerage_name, agent.phone):
        if value:
            lines.append(f'<p style="margin: 0; color: #555555;">{escape(value)}</p>')
    if agent.email:
        email = escape(agent.email, quote=True)
        lines.append(
            f'<p style="margin: 0;"><a href="mailto:{email}" '
            f'style="color: #3b82f6; text-decoration: none;">{escape(agent.email)}</a></p>'
        )

    logos = [
        (url, alt)
        for url, alt in (
            (agent.personal_logo_url, "Personal Logo"),
            (agent.brokerage_logo_url, "Brokerage Logo"),
        )
        if url
    ]
    logo_row = ""
    if logos:
        cells = "".join(
            f'<td align="center" style="padding: 0 10px;"><img src="{escape(url, quote=True)}" '
            f'alt="{alt}" style="display: block; max-width: 120px; max-height: 60px; height: auto;"/></td>'
            for url, alt in logos
        )
        logo_row = (
            '<tr><td style="padding: 20px 0 0 0;"><table border="0" cellpadding="0" '
            f'cellspacing="0" width="100%" style="border-collapse: collapse;"><tr>{cells}</tr>'
            "</table></td></tr>"
        )

    lines_html = "".join(lines)
    return f"""<table border="0" cellpadding="0" cellspacing="0" width="100%" style="border-collapse: collapse;">
  <tr>
    <td style="padding: 20px 0 0 0;">
      <table border="0" cellpadding="0" cellspacing="0" width="100%" style="border-collapse: collapse;">
        <tr>
          {photo}
          <td width="100%" valign="middle" style="font-family: Arial, sans-serif; font-size: 14px; line-height: 20px;">
            {lines_html}
          </td>
        </tr>
      </table>
    </td>
  </tr>
  {logo_row}
</table>"""


def gift_email_subject(sender: AgentProfile, open_house_address: str | None = None) -> str:
    if open_house_address:
        return f"Thank you for visiting {open_house_address}"
    return f"A gift from {sender.name}"


def gift_email_html(
    recipient_name: str,
    sender: AgentProfile,
    brand_code: str,
    amount_in_cents: int,
    claim_url: str,
    brand_name: str | None = None,
    message: str | None = None,
    open_house_address: str | None = None,
) -> str:
    """Recipient-facing notice with the claim button and sender signature."""
    amount = format_cents(amount_in_cents)
    brand = escape(brand_name or humanize_brand_code(brand_code))
    card = f"<strong>{amount} {brand} gift card</strong>"
    if open_house_address:
        greeting = (
            "Thank you for visiting the open house at "
            f"<strong>{escape(open_house_address)}</strong>! As a token of our appreciation, "
            f"{escape(sender.name)} has sent you a {card}."
        )
    else:
        greeting = f"{escape(sender.name)} has sent you a {card}."

    quote = ""
    if message:
        quote = f"""<table border="0" cellpadding="0" cellspacing="0" width="100%" style="border-collapse: collapse; margin: 20px 0;">
  <tr><td style="background-color: #f9f9f9; border-left: 4px solid #3b82f6; padding: 15px;">
    <p style="margin: 0; font-style: italic; color: #555555;">"{escape(message)}"</p>
  </td></tr>
</table>"""

    button = _button(claim_url, "Claim My Gift")
    signature = signature_html(sender)
    rows = f"""<tr>
  <td align="center" style="padding: 40px 20px; border-bottom: 1px solid #eeeeee;">
    <h1 style="color: #333333; margin: 0;">You've Received a Gift!</h1>
  </td>
</tr>
<tr>
  <td style="padding: 30px;">
    <p style="{_TEXT_STYLE}">Hi {escape(recipient_name)},</p>
    <p style="{_TEXT_STYLE}">{greeting}</p>
    {quote}
    {button}
  </td>
</tr>
<tr>
  <td align="center" style="padding: 0 30px 30px 30px;">
    <table border="0" cellpadding="0" cellspacing="0" width="80%" style="border-collapse: collapse;">
      <tr><td>{signature}</td></tr>
    </table>
  </td>
</tr>"""
    return _document("A gift for you!", rows)


def new_lead_email_html(
    agent: AgentProfile,
    lead_name: str,
    open_house_address: str,
    site_url: str,
    lead_email: str | None = None,
    lead_phone: str | None = None,
) -> str:
    """Agent-facing notice for a freshly captured lead."""
    details = [f'<tr><td style="padding: 10px 15px;"><strong>Name:</strong> {escape(lead_name)}</td></tr>']
    for label, value in (("Email", lead_email), ("Phone", lead_phone)):
        if value:
            details.append(
                '<tr><td style="padding: 10px 15px; border-top: 1px solid #eeeeee;">'
                f"<strong>{label}:</strong> {escape(value)}</td></tr>"
            )

    details_html = "".join(details)
    button = _button(site_url.rstrip("/") + "/user/my-leads", "View All Leads")
    rows = f"""{_logo_row()}
<tr>
  <td style="padding: 30px;">
    <h1 style="color: #333333; margin: 0 0 20px 0;">You Have a New Lead!</h1>
    <p style="{_TEXT_STYLE}">Hi {escape(agent.name)},</p>
    <p style="{_TEXT_STYLE}">A new lead was just captured from your open house at <strong>{escape(open_house_address)}</strong>.</p>
    <table border="0" cellpadding="0" cellspacing="0" width="100%" style="border-collapse: collapse; margin: 20px 0; background-color: #f9f9f9; border: 1px solid #eeeeee; border-radius: 4px;">
      {details_html}
    </table>
    {button}
  </td>
</tr>"""
    return _document("New Lead Notification", rows)


def low_balance_email_html(agent: AgentProfile, balance_cents: int, site_url: str) -> str:
    """Agent-facing alert that automations may stop for lack of funds."""
    button = _button(site_url.rstrip("/") + "/user/billing", "Add Funds")
    rows = f"""{_logo_row()}
<tr>
  <td style="padding: 30px;">
    <h1 style="color: #333333; margin: 0 0 20px 0;">Low Balance Alert</h1>
    <p style="{_TEXT_STYLE}">Hi {escape(agent.name)},</p>
    <p style="{_TEXT_STYLE}">This is an alert to let you know that your available balance is running low. Your current balance is <strong>{format_cents(balance_cents)}</strong>.</p>
    <p style="{_TEXT_STYLE}">Please add more funds to your account to ensure your gift automations continue to run without interruption.</p>
    {button}
  </td>
</tr>"""
    return _document("Low Balance Alert", rows)
