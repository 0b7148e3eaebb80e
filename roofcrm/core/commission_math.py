from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

_FLAT_TYPES = ("flat_amount", "flat_per_job")


def to_decimal(value: Any) -> Decimal:
    """None, blanks and garbage count as zero."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def to_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_commission(
    commission_type: Optional[str],
    rate: Any,
    flat_amount: Any,
    base_amount: Any,
) -> Decimal:
    """
    Commission owed for a set of terms.

    percentage:              base_amount * rate / 100
    flat_amount/flat_per_job: flat_amount, base_amount is ignored
    anything else:           0
    """
    type_value = getattr(commission_type, "value", commission_type)
    if type_value == "percentage":
        return to_money(to_decimal(base_amount) * to_decimal(rate) / Decimal(100))
    if type_value in _FLAT_TYPES:
        return to_money(flat_amount)
    return ZERO
