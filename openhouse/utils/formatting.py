"""Display helpers for money and gift brands."""

from __future__ import annotations

import re

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def format_cents(amount_cents: int) -> str:
    """Format integer cents as a dollar string, e.g. ``2500 -> "$25.00"``."""
    return f"${amount_cents / 100:.2f}"


def humanize_brand_code(brand_code: str) -> str:
    """Turn a Giftbit brand code into a readable name (``amazonUS -> "Amazon US"``)."""
    if not brand_code:
        return ""
    spaced = _WORD_BOUNDARY.sub(" ", brand_code.strip())
    return spaced[0].upper() + spaced[1:]
