import math
from decimal import Decimal, InvalidOperation


ZERO = Decimal("0")


def to_amount(value: object) -> Decimal:
    """Coerce a loosely-typed document value to a Decimal amount.

    Missing, non-numeric, boolean and non-finite values all become zero, as
    does anything outside the range of a double.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        text = str(value).strip()
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not amount.is_finite() or not math.isfinite(float(amount)):
        return ZERO
    return amount


def to_json_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)
