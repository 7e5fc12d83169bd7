"""Display helpers for money and dates (en-US conventions)."""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_currency(value: float, currency: str = "USD") -> str:
    """format_currency(1234.5) -> '$1,234.50'; negatives as '-$1,234.50'."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percent(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}%"


def format_date(value: Union[date, datetime, str]) -> str:
    """format_date('2026-10-19') -> 'October 19, 2026'."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return f"{value.strftime('%B')} {value.day}, {value.year}"
