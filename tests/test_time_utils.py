"""Time and formatting helper tests."""

from __future__ import annotations

from datetime import UTC, datetime

from openhouse.utils.formatting import format_cents, humanize_brand_code
from openhouse.utils.time import minutes_ago, now_utc


def test_now_utc_is_aware() -> None:
    assert now_utc().tzinfo is UTC


def test_minutes_ago() -> None:
    base = datetime(2026, 2, 7, 10, 30, tzinfo=UTC)
    assert minutes_ago(30, base=base) == datetime(2026, 2, 7, 10, tzinfo=UTC)


def test_format_cents() -> None:
    assert format_cents(2500) == "$25.00"
    assert format_cents(5) == "$0.05"


def test_humanize_brand_code() -> None:
    assert humanize_brand_code("amazonUS") == "Amazon US"
    assert humanize_brand_code("homeDepot") == "Home Depot"
    assert humanize_brand_code("") == ""
