# money.py
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value) -> Decimal:
    """Coerce an int, float, str or Decimal amount to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def is_negligible(value) -> bool:
    """Anything under one cent counts as zero."""
    return abs(to_decimal(value)) < CENT
