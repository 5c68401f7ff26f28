"""
Display helpers for money and dates
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from .calculations import round_places
from .config import config

DateLike = Union[str, date, datetime]


def _display_amount(amount) -> Decimal:
    if amount is None or isinstance(amount, bool):
        return Decimal("0")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")


def format_currency(
    amount,
    currency_code: Optional[str] = None,
    currency_symbol: Optional[str] = None,
) -> str:
    """
    Format an amount for display, e.g. "Rp 143.000".

    IDR has no minor unit and groups thousands with dots; other currencies
    group with commas and keep at most two decimals.
    """
    code = currency_code or config.CURRENCY_CODE
    symbol = currency_symbol or config.CURRENCY_SYMBOL
    value = _display_amount(amount)

    if code == "IDR":
        whole = round_places(value, Decimal("1"))
        return f"{symbol} {int(whole):,}".replace(",", ".")

    cents = round_places(value, Decimal("0.01"))
    text = f"{cents:,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return f"{symbol} {text}"


def get_currency_code() -> str:
    return config.CURRENCY_CODE


def parse_datetime(value: DateLike) -> datetime:
    """Parse an ISO 8601 string (a trailing Z is accepted) or pass a date through."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_date(value: DateLike, fmt: str = "%b %d, %Y") -> str:
    return parse_datetime(value).strftime(fmt)


def _clock(moment: datetime) -> str:
    return moment.strftime("%I:%M %p").lstrip("0")


def format_smart_date(value: DateLike, now: Optional[datetime] = None) -> str:
    """
    "Today at 2:30 PM", "Yesterday at 2:30 PM", "Monday at 2:30 PM" within a
    week, "Jan 15" within a year, "Jan 15, 2024" otherwise.
    """
    moment = parse_datetime(value)
    if now is None:
        now = datetime.now(timezone.utc) if moment.tzinfo else datetime.now()
    elif moment.tzinfo and not now.tzinfo:
        now = now.replace(tzinfo=moment.tzinfo)
    elif now.tzinfo and not moment.tzinfo:
        moment = moment.replace(tzinfo=now.tzinfo)

    day_diff = (now.date() - moment.date()).days
    if day_diff == 0:
        return f"Today at {_clock(moment)}"
    if day_diff == 1:
        return f"Yesterday at {_clock(moment)}"

    elapsed_days = (now - moment).days
    if elapsed_days < 7:
        return f"{moment.strftime('%A')} at {_clock(moment)}"
    if elapsed_days < 365:
        return moment.strftime("%b %d")
    return moment.strftime("%b %d, %Y")
