from datetime import date, datetime, timezone
from decimal import Decimal

from billsplit.config import config
from billsplit.formatting import (
    format_currency,
    format_date,
    format_smart_date,
    get_currency_code,
)


def test_format_currency_idr():
    assert format_currency("143000", "IDR", "Rp") == "Rp 143.000"
    assert format_currency(1234567.6, "IDR", "Rp") == "Rp 1.234.568"
    assert format_currency("garbage", "IDR", "Rp") == "Rp 0"
    assert format_currency(None, "IDR", "Rp") == "Rp 0"


def test_format_currency_other_codes():
    assert format_currency("1234.5", "USD", "$") == "$ 1,234.50"
    assert format_currency(2000, "USD", "$") == "$ 2,000"
    assert format_currency("-12.345", "USD", "$") == "$ -12.35"


def test_format_currency_huge_amounts():
    assert format_currency("1e30", "IDR", "Rp") == "Rp 1" + ".000" * 10
    assert format_currency(Decimal("1e30"), "IDR", "Rp").startswith("Rp 1.000.000")


def test_default_currency_comes_from_config(monkeypatch):
    monkeypatch.setattr(config, "CURRENCY_CODE", "IDR")
    monkeypatch.setattr(config, "CURRENCY_SYMBOL", "Rp")
    assert get_currency_code() == "IDR"
    assert format_currency(2500) == "Rp 2.500"


def test_format_dates():
    assert format_date("2024-01-15T19:30:00Z") == "Jan 15, 2024"
    assert format_date(date(2024, 3, 5), "%d/%m/%Y") == "05/03/2024"


def test_format_smart_date():
    now = datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc)
    assert format_smart_date("2024-01-17T14:30:00Z", now=now) == "Today at 2:30 PM"
    assert format_smart_date("2024-01-16T09:05:00Z", now=now) == "Yesterday at 9:05 AM"
    assert format_smart_date("2024-01-13T20:00:00Z", now=now) == "Saturday at 8:00 PM"
    assert format_smart_date("2023-11-02T20:00:00Z", now=now) == "Nov 02"
    assert format_smart_date("2022-11-02T20:00:00Z", now=now) == "Nov 02, 2022"


def test_format_smart_date_naive_now():
    assert format_smart_date("2024-01-16T09:05:00", now=datetime(2024, 1, 16, 22, 0)) == "Today at 9:05 AM"
