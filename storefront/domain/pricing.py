"""Order money math.

Amounts are integers in the smallest currency unit. Discounts live on the
line items; the order-level ``discount`` column is always reset to 0 when
totals are recomputed so a discount is never counted twice.
"""

import math
from typing import NamedTuple, Sequence

from storefront.domain.errors import ValidationError

# keeps price * quantity well inside the integer columns
MAX_QUANTITY = 100_000


class Line(NamedTuple):
    price: int
    quantity: int
    discount: int = 0


class Totals(NamedTuple):
    subtotal: int
    discount: int
    total: int


def item_total(price: int, quantity: int) -> int:
    return price * quantity


def subtotal_of(lines: Sequence) -> int:
    return sum(item_total(l.price, l.quantity) for l in lines)


def summarize(lines: Sequence, shipping_fee: int) -> Totals:
    subtotal = subtotal_of(lines)
    discounts = sum(l.discount for l in lines)
    return Totals(subtotal=subtotal, discount=0, total=max(0, subtotal + shipping_fee - discounts))


def round_half_up(numerator: int, denominator: int) -> int:
    """Round ``numerator / denominator`` to the nearest int, halves toward +inf."""
    return (2 * numerator + denominator) // (2 * denominator)


def validate_discount_target(subtotal: int, target: int) -> None:
    if target < 0:
        raise ValidationError("Discount cannot be negative")
    if target > subtotal:
        raise ValidationError("Discount exceeds order subtotal")


def distribute_order_discount(lines: Sequence, target: int) -> list[int]:
    """Spread an order-wide discount target over ``lines``.

    ``lines`` must already be in a stable order (ascending id); the last one
    absorbs the rounding remainder. Returns the new discount for each line,
    in the same order, summing exactly to ``target``.
    """
    grand = subtotal_of(lines)
    validate_discount_target(grand, target)

    current = [l.discount for l in lines]
    delta = target - sum(current)
    if delta == 0 or not lines:
        return current

    totals = [item_total(l.price, l.quantity) for l in lines]
    shares = []
    distributed = 0
    for t in totals[:-1]:
        share = round_half_up(delta * t, grand)
        shares.append(share)
        distributed += share
    shares.append(delta - distributed)

    result = [min(max(d + s, 0), t) for d, s, t in zip(current, shares, totals)]

    # clamping can drop part of the delta; hand it to lines with room, last first
    leftover = target - sum(result)
    for i in reversed(range(len(result))):
        if leftover == 0:
            break
        if leftover > 0:
            step = min(leftover, totals[i] - result[i])
        else:
            step = -min(-leftover, result[i])
        result[i] += step
        leftover -= step
    return result


def validate_item_discount(price: int, quantity: int, discount: int) -> None:
    if discount < 0:
        raise ValidationError("Discount cannot be negative")
    if discount > item_total(price, quantity):
        raise ValidationError("Discount exceeds item total")


def validate_quantity(quantity) -> int:
    if not math.isfinite(quantity):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if quantity != int(quantity):
        raise ValidationError("Quantity must be a whole number")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"Quantity cannot exceed {MAX_QUANTITY}")
    return int(quantity)


def clamp_discount(price: int, quantity: int, discount: int) -> int:
    return min(discount, item_total(price, quantity))
