"""Amount parsing utilities.

Statement amounts arrive as display strings; the engine only ever handles
integer minor units, so parsing ends in an ``int``.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

_CURRENCY_SYMBOLS = re.compile(r"[$€£¥₪]|ILS|NIS|USD|EUR|GBP", re.IGNORECASE)
_CENT = Decimal("0.01")


def parse_amount(amount_str: str) -> int:
    """Parse an amount string into signed minor units.

    Handles various formats:
    - "123.45" -> 12345
    - "₪123.45" / "$123.45"
    - "-123.45" / "123.45-" (trailing minus, common in bank exports)
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Amount in minor units (agorot/cents)

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = amount_str.strip()

    is_negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        is_negative = True
        cleaned = cleaned[1:-1]

    cleaned = _CURRENCY_SYMBOLS.sub("", cleaned)
    cleaned = cleaned.replace(",", "").replace(" ", "")

    if cleaned.endswith("-"):
        is_negative = not is_negative
        cleaned = cleaned[:-1]

    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")

    minor = int((value.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    return -minor if is_negative else minor


def format_amount(amount_agorot: int) -> str:
    """Render minor units as a two-decimal string (display only)."""
    sign = "-" if amount_agorot < 0 else ""
    whole, cents = divmod(abs(int(amount_agorot)), 100)
    return f"{sign}{whole:,}.{cents:02d}"
