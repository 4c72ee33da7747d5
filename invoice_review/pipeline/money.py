"""Money helpers: finite checks, 2-decimal rounding and user input parsing."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
import math
import re
from typing import Any, Optional


_CURRENCY_PATTERN = re.compile(r"(?i)\b(ils|nis|usd|eur)\b|₪|€|\$")
_CENT = Decimal("0.01")


def is_finite_number(value: Any) -> bool:
    """Return True for int/float/Decimal values that are finite (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    return False


def round2(value: Any) -> Optional[float]:
    """Round a money value to 2 decimals, half away from zero.

    Non-numeric and non-finite values (NaN, +/-Infinity) return None, so a
    derived value is never stored as NaN or Infinity.
    """
    if not is_finite_number(value):
        return None
    # str() keeps the shortest repr, so 1.005 rounds to 1.01 instead of 1.0
    amount = Decimal(str(value))
    with localcontext() as ctx:
        # quantize needs every integer digit plus two decimals
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        quantized = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    result = float(quantized)
    return result if math.isfinite(result) else None


def to_money(value: Any) -> Optional[float]:
    """Parse a user-entered money value.

    Accepts numbers and strings such as "1,234.50", "₪ 99" or "-12.5".
    Blank input means "absent" and returns None.

    Raises:
        ValueError: If the text is not a number
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid money value: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return float(value) if is_finite_number(value) else None

    raw = str(value).strip()
    if not raw:
        return None

    cleaned = _CURRENCY_PATTERN.sub("", raw)
    cleaned = re.sub(r"\s+", "", cleaned)
    # Comma as thousands separator only when followed by three digits
    cleaned = re.sub(r"(?<=\d),(?=\d{3}(\D|$))", "", cleaned)
    cleaned = cleaned.replace(",", ".")

    if not re.fullmatch(r"-?\d+(\.\d+)?", cleaned):
        raise ValueError(f"Invalid money value: {value!r}")

    try:
        return float(Decimal(cleaned))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc
