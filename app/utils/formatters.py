"""
Formatting helpers for API responses and CLI output.
Includes money/number display and JSON encoding of Decimal, dates and enums.
"""
import enum
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional

from flask.json.provider import DefaultJSONProvider


def money(value: Union[int, float, Decimal, str, None], symbol: str = '$', decimals: int = 2) -> str:
    """
    Format an amount with a currency symbol and thousands separators.

    Args:
        value: Amount to format
        symbol: Currency symbol placed before the number
        decimals: Fixed number of decimals

    Returns:
        Formatted string

    Examples:
        money(1500) -> "$1,500.00"
        money(Decimal('29.99'), '€') -> "€29.99"
        money(-5) -> "-$5.00"
        money(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    num = num.quantize(Decimal(10) ** -decimals)
    sign = '-' if num < 0 else ''
    return f"{sign}{symbol}{abs(num):,.{decimals}f}"


def percent(value: Optional[float], decimals: int = 1) -> str:
    """Format a percentage, e.g. 12.345 -> "12.3%"."""
    if value is None:
        return "-"
    return f"{value:.{decimals}f}%"


def json_default(obj):
    """Convert values the stdlib JSON encoder rejects."""
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class LedgerJSONProvider(DefaultJSONProvider):
    """JSON provider emitting money as numbers and dates as ISO-8601."""

    default = staticmethod(json_default)
    sort_keys = False
