"""Order pricing.

    subtotal = Σ(unit_price × quantity)
    discount = coupon discount, never above subtotal
    tax      = (subtotal − discount) × tax_rate
    total    = subtotal − discount + tax, never below zero

Every amount is a Decimal rounded once, half-up, to two places.
"""

from dataclasses import dataclass
from decimal import Decimal

from shared.errors import ValidationError
from shared.money import ZERO, round_money, to_decimal


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class PricingResult:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    lines: tuple[PricedLine, ...] = ()


def price_line(product_id, quantity, unit_price, discount=ZERO) -> PricedLine:
    if quantity <= 0:
        raise ValidationError({"quantity": [f"Quantity for product {product_id} must be positive"]})
    unit_price = round_money(unit_price)
    discount = round_money(discount)
    return PricedLine(
        product_id=product_id,
        quantity=quantity,
        unit_price=unit_price,
        discount_amount=discount,
        line_total=round_money(unit_price * quantity - discount),
    )


def calculate_pricing(lines, discount=None, tax_rate=Decimal("0.05")) -> PricingResult:
    """Price ``lines`` given as ``(product_id, quantity, unit_price)`` tuples."""
    priced = tuple(price_line(product_id, quantity, unit_price) for product_id, quantity, unit_price in lines)
    subtotal = round_money(sum((line.unit_price * line.quantity for line in priced), ZERO))

    discount_amount = round_money(discount) if discount is not None else ZERO
    discount_amount = min(max(discount_amount, ZERO), subtotal)

    tax_amount = round_money((subtotal - discount_amount) * to_decimal(tax_rate))
    total_amount = max(round_money(subtotal - discount_amount + tax_amount), ZERO)

    return PricingResult(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total_amount=total_amount,
        lines=priced,
    )
