"""
Number, currency and date formatting for invoice rendering.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, float, int, str]

RUPEE = "₹"

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr, avoiding binary float noise
        return Decimal(str(value))
    return Decimal(value)


def round_half_up(value: Number, places: int = 2) -> Decimal:
    """Round to a fixed number of places, halves away from zero."""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def group_indian(int_str: str) -> str:
    """
    Group digits Indian style: last 3 digits, then groups of 2.
    1234567 -> 12,34,567
    """
    if len(int_str) <= 3:
        return int_str
    last_three = int_str[-3:]
    remaining = int_str[:-3]
    groups = []
    while remaining:
        groups.insert(0, remaining[-2:])
        remaining = remaining[:-2]
    return ','.join(groups) + ',' + last_three


def format_indian_number(amount: Number) -> str:
    """Format with lakh/crore grouping and exactly 2 fraction digits."""
    value = round_half_up(amount, 2)
    is_negative = value < 0
    int_part, _, frac_part = f"{abs(value):.2f}".partition(".")
    formatted = f"{group_indian(int_part)}.{frac_part}"
    return f"-{formatted}" if is_negative else formatted


def format_indian_currency(amount: Number) -> str:
    """
    Format number in Indian style with the Rupee sign (e.g., ₹1,23,456.00)
    """
    formatted = format_indian_number(amount)
    if formatted.startswith("-"):
        return f"-{RUPEE}{formatted[1:]}"
    return f"{RUPEE}{formatted}"


def format_plain(value: Number) -> str:
    """Drop trailing zeros: 18.00 -> 18, 12.50 -> 12.5"""
    value = to_decimal(value)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def _below_thousand(n: int) -> str:
    if n == 0:
        return ""
    if n < 20:
        return _ONES[n]
    if n < 100:
        return _TENS[n // 10] + (" " + _ONES[n % 10] if n % 10 else "")
    rest = _below_thousand(n % 100)
    return _ONES[n // 100] + " Hundred" + (" " + rest if rest else "")


def _spell(n: int) -> str:
    if n == 0:
        return ""
    crore, n = divmod(n, 10000000)
    lakh, n = divmod(n, 100000)
    thousand, hundred = divmod(n, 1000)

    parts = []
    if crore:
        parts.append(_spell(crore) + " Crore")
    if lakh:
        parts.append(_below_thousand(lakh) + " Lakh")
    if thousand:
        parts.append(_below_thousand(thousand) + " Thousand")
    if hundred:
        parts.append(_below_thousand(hundred))
    return " ".join(parts)


def number_to_words(amount: Number) -> str:
    """
    Spell an amount in Indian numbering.
    408910 -> "INR Four Lakh Eight Thousand Nine Hundred Ten Only"
    """
    value = abs(round_half_up(amount, 2))
    rupees = int(value)
    paise = int((value - rupees) * 100)

    words = "INR " + (_spell(rupees) or "Zero")
    if paise:
        words += " and " + _spell(paise) + " Paise"
    return words + " Only"


def format_date(value) -> str:
    """Dates print as 01-Oct-2025; strings are shown as given."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, (date, datetime)):
        return value.strftime("%d-%b-%Y")
    return str(value)
