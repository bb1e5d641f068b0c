"""
Display formatting for amounts and dates.

Amounts are rounded to cents here and only here; the engines keep
full Decimal precision. Output follows German conventions
(1.234,56 € / 31.12.2026) to match how the household reads its books.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "CHF": "CHF",
    "INR": "₹",
}

CENT = Decimal("0.01")


def format_currency(amount: Union[Decimal, int, float, str], currency: str = "EUR") -> str:
    """
    Format an amount as de-DE currency text.

    >>> format_currency(Decimal("1234.5"))
    '1.234,50 €'
    """
    value = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    # 1,234.50 -> 1.234,50
    text = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if value < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{sign}{text} {symbol}"


def format_date(value: Union[date, datetime, str]) -> str:
    """Format a date as dd.mm.yyyy. ISO strings are accepted."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime("%d.%m.%Y")
