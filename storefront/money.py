"""
Money Utilities - Safe Decimal operations for monetary values.

Prices travel as floats (catalog JSON, persisted cart) but every sum and
product is computed in Decimal to avoid float drift.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

Number = Union[str, int, float, Decimal]

MONEY_PRECISION = Decimal("0.01")
INTEGER_PRECISION = Decimal("1")

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            # str() keeps the shortest repr, e.g. 0.1 -> "0.1"
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def to_float(value: Number) -> float:
    """Convert to float for JSON serialization. Use only at boundaries."""
    return float(to_decimal(value))


def round_money(value: Number, to_int: bool = False) -> Decimal:
    """Round monetary value to 2 places (or to an integer)."""
    decimal_value = to_decimal(value)
    precision = INTEGER_PRECISION if to_int else MONEY_PRECISION
    return decimal_value.quantize(precision, rounding=ROUND_HALF_UP)


def add(a: Number, b: Number) -> Decimal:
    """Safe addition of monetary values."""
    return to_decimal(a) + to_decimal(b)


def subtract(a: Number, b: Number) -> Decimal:
    """Safe subtraction of monetary values."""
    return to_decimal(a) - to_decimal(b)


def multiply(value: Number, factor: Number) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)


def total_of(values: Iterable[Number]) -> Decimal:
    """Sum monetary values in Decimal."""
    result = Decimal("0")
    for value in values:
        result += to_decimal(value)
    return result


def _group_indian(integer_part: str) -> str:
    """Group digits the en-IN way: 12,34,567."""
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_money(value: Number, currency: str = "INR") -> str:
    """
    Format monetary value with currency symbol.

    INR uses Indian digit grouping and drops a zero fraction
    (matches what the shop shows on price tags: ₹1,24,999 / ₹49.50).

    Args:
        value: Value to format
        currency: Currency code (INR, USD, EUR, GBP)

    Returns:
        Formatted string with currency symbol
    """
    amount = round_money(value)
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    sign = "-" if amount < 0 else ""
    amount = abs(amount)

    if currency == "INR":
        integer_part, _, fraction = f"{amount:.2f}".partition(".")
        formatted = _group_indian(integer_part)
        if fraction != "00":
            formatted = f"{formatted}.{fraction}"
    else:
        formatted = f"{amount:,.2f}"

    if currency in CURRENCY_SYMBOLS:
        return f"{sign}{symbol}{formatted}"
    return f"{sign}{formatted} {symbol}"
