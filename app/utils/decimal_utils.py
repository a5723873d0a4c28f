# app/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Exact conversion; floats go through str() so 0.1 stays 0.1."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value) -> Decimal:
    # display only, never feed the result back into a calculation
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return f"${to_money(value):,.2f}"
