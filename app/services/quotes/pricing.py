# app/services/quotes/pricing.py
"""
Quote pricing. Pure functions over Decimal, no I/O.

Nothing here rounds: amounts keep full precision until they are displayed
(see ``app.utils.decimal_utils.to_money``).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from app.models.enums.discount_type import DiscountType
from app.utils.decimal_utils import to_decimal

HUNDRED = Decimal("100")
ZERO = Decimal("0")


class PricingError(ValueError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: Decimal
    discount_value: Decimal
    discount_type: DiscountType
    discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


@dataclass(frozen=True)
class PricedLine:
    quantity: int
    unit_price: Decimal
    discount: Decimal
    total: Decimal


def _non_negative(value, field: str) -> Decimal:
    amount = to_decimal(value)
    if not amount.is_finite():
        raise PricingError(f"{field} must be a finite number", field)
    if amount < ZERO:
        raise PricingError(f"{field} cannot be negative", field)
    return amount


def line_item_total(unit_price, quantity: int, discount=ZERO) -> Decimal:
    if quantity is None or int(quantity) != quantity or quantity < 1:
        raise PricingError("quantity must be a whole number of at least 1", "quantity")

    price = _non_negative(unit_price, "unit_price")
    item_discount = _non_negative(discount, "discount")

    gross = price * quantity
    if item_discount > gross:
        raise PricingError("Line discount cannot exceed the line amount", "discount")

    return gross - item_discount


def price_line(unit_price, quantity: int, discount=ZERO) -> PricedLine:
    total = line_item_total(unit_price, quantity, discount)
    return PricedLine(
        quantity=quantity,
        unit_price=to_decimal(unit_price),
        discount=to_decimal(discount),
        total=total,
    )


def subtotal_of(items: Iterable) -> Decimal:
    """Sum of line totals. Items need ``unit_price``, ``quantity`` and ``discount``."""
    subtotal = ZERO
    for item in items:
        subtotal += line_item_total(
            item.unit_price,
            item.quantity,
            getattr(item, "discount", None) or ZERO,
        )
    return subtotal


def calculate_pricing(
    subtotal,
    discount_value=ZERO,
    discount_type: DiscountType = DiscountType.FIXED,
    tax_rate=ZERO,
    shipping=ZERO,
) -> PricingBreakdown:
    subtotal = _non_negative(subtotal, "subtotal")
    discount_value = _non_negative(discount_value, "discount_value")
    tax_rate = _non_negative(tax_rate, "tax_rate")
    shipping = _non_negative(shipping, "shipping")
    discount_type = DiscountType(discount_type)

    if discount_type == DiscountType.PERCENTAGE:
        if discount_value > HUNDRED:
            raise PricingError("Percentage discount cannot exceed 100", "discount_value")
        discount = subtotal * discount_value / HUNDRED
    else:
        if discount_value > subtotal:
            raise PricingError("Discount cannot exceed the subtotal", "discount_value")
        discount = discount_value

    taxable = subtotal - discount
    tax = taxable * tax_rate / HUNDRED
    total = taxable + tax + shipping

    return PricingBreakdown(
        subtotal=subtotal,
        discount_value=discount_value,
        discount_type=discount_type,
        discount=discount,
        tax_rate=tax_rate,
        tax=tax,
        shipping=shipping,
        total=total,
    )
