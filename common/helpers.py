"""
EShop - Shared Helpers
=======================
Pure utility functions with NO database or module dependencies.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC; naive values are taken as UTC (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def slugify(text: str) -> str:
    """Convert text to URL-friendly slug."""
    text = (text or "").lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")


def money(value) -> Decimal:
    """Quantize a price to two decimal places."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_minor_units(value) -> int:
    """Price in major units (e.g. dollars) -> integer minor units (cents)."""
    return int(money(value) * 100)


def from_minor_units(value) -> Decimal:
    """Integer minor units (cents) -> price in major units."""
    return money(Decimal(int(value or 0)) / 100)
