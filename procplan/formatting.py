"""
Display helpers shared by coherence messages and notification templates.

Currency is a single fixed unit per computation; no locale handling.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

CURRENCY_SYMBOL = "$"


def format_money(amount: float, symbol: str = CURRENCY_SYMBOL) -> str:
    """Format an amount as ``$1,234.50`` (negative amounts keep their sign)."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_date(value: Union[date, datetime]) -> str:
    """Format a date as dd/mm/YYYY."""
    return value.strftime("%d/%m/%Y")


def format_percent(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"
