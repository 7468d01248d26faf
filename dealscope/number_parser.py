from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Optional
import math
import re


CURRENCY_GLYPHS = "$€£¥₹"

UNIT_MULTIPLIERS = {
    "m": 1.0,
    "b": 1000.0,
    "k": 0.001,
}

_STRIP_PATTERN = re.compile(f"[{re.escape(CURRENCY_GLYPHS)},\\s]")
_NUMBER_PATTERN = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_financial_number(value: Any) -> Optional[float]:
    """Parse "$1,234.5M", "(500)", "2.3B", "15%" or "42K" into millions.

    Percentages come back as bare percentage points without unit scaling.
    Anything that does not reduce to a decimal number yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    cleaned = _STRIP_PATTERN.sub("", str(value).strip())
    if not cleaned:
        return None

    negative = "(" in cleaned or ")" in cleaned
    cleaned = cleaned.replace("(", "").replace(")", "")

    is_percentage = "%" in cleaned
    cleaned = cleaned.replace("%", "")

    multiplier = 1.0
    if cleaned and cleaned[-1].lower() in UNIT_MULTIPLIERS:
        multiplier = UNIT_MULTIPLIERS[cleaned[-1].lower()]
        cleaned = cleaned[:-1]

    if not _NUMBER_PATTERN.fullmatch(cleaned):
        return None
    number = Decimal(cleaned)
    if negative and number > 0:
        number = -number
    if not is_percentage:
        number *= Decimal(str(multiplier))
    result = float(number)
    return result if math.isfinite(result) else None


def round_half_up(value: float, digits: int = 0) -> float:
    # Works on the exact binary value, so 6.25 -> 6.3 but 1.005 -> 1.0.
    if not math.isfinite(value):
        return value
    exact = Decimal(value)
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, exact.adjusted() + digits + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def is_finite_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
