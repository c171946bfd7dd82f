"""
Money and date formatting shared by every invoice presentation.

Amounts are whole currency units grouped in thousands with no decimal
places, e.g. ``Rp 105.000``.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

Number = Union[Decimal, int, float]


def format_currency(amount: Number, symbol: str = "Rp", separator: str = ".") -> str:
    value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(value):,.0f}".replace(",", separator)
    return f"{sign}{symbol} {grouped}" if symbol else f"{sign}{grouped}"


def format_long_date(moment: datetime) -> str:
    """7 March 2024"""
    return f"{moment.day} {MONTH_NAMES[moment.month - 1]} {moment.year}"


def format_short_date(moment: datetime) -> str:
    """07/03/2024"""
    return moment.strftime("%d/%m/%Y")


def format_time(moment: datetime) -> str:
    return moment.strftime("%H:%M")
