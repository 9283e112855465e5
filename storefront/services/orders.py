"""Order use cases: checkout, status changes and back-office price edits.

Every public function takes the caller's session and runs as a single
transaction (see ``storefront.db.transaction``). The order row is locked
before its line items are read so that two edits of the same order queue up
instead of overwriting each other.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.core.logging import get_logger
from storefront.db import models
from storefront.db.transaction import get_for_update, transactional
from storefront.domain import pricing
from storefront.domain.errors import NotFoundError, ValidationError
from storefront.domain.timeline import ORDER_TIMELINE, OrderStatus, utcnow
from storefront.domain.transitions import apply_patch, timestamps_of, transition

logger = get_logger(__name__)

CUSTOMER_CANCELLABLE = (OrderStatus.PENDING, OrderStatus.PROCESSING)


def _lock_order(db: Session, order_id: int) -> models.Order:
    order = get_for_update(db, models.Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _lock_lines(db: Session, order_id: int) -> list[models.OrderLineItem]:
    stmt = (
        select(models.OrderLineItem)
        .where(models.OrderLineItem.order_id == order_id)
        .order_by(models.OrderLineItem.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(db.execute(stmt).scalars())


def _lock_item(db: Session, item_id: int):
    item = db.get(models.OrderLineItem, item_id)
    if item is None:
        raise NotFoundError("Item not found")
    order = _lock_order(db, item.order_id)
    lines = _lock_lines(db, order.id)
    item = next((l for l in lines if l.id == item_id), None)
    if item is None:
        raise NotFoundError("Item not found")
    return order, item, lines


def _recalculate(order: models.Order, lines) -> None:
    totals = pricing.summarize(lines, order.shipping_fee)
    order.subtotal = totals.subtotal
    order.discount = totals.discount
    order.total = totals.total
    # always touches the row, so the version check runs even if totals are unchanged
    order.updated_at = utcnow()


def _set_status(order: models.Order, status: OrderStatus) -> bool:
    if status == order.status:
        return False
    now = utcnow()
    apply_patch(order, transition(ORDER_TIMELINE, order.status, timestamps_of(order, ORDER_TIMELINE), status, now))
    order.status = status
    order.updated_at = now
    return True


@transactional
def checkout(db: Session, user_id: str, items, shipping_fee: int = 0, shipping_address: dict | None = None):
    """Create a PENDING order from cart lines (``product_id``, ``quantity``, ``price``, ``title``)."""
    if not items:
        raise ValidationError("Cart is empty")
    if shipping_fee < 0:
        raise ValidationError("Shipping fee cannot be negative")

    order = models.Order(
        user_id=user_id,
        status=OrderStatus.PENDING,
        shipping_fee=shipping_fee,
        shipping_address=shipping_address,
        request_at=utcnow(),
    )
    for it in items:
        if it["price"] < 0:
            raise ValidationError("Price cannot be negative")
        order.items.append(
            models.OrderLineItem(
                product_id=it["product_id"],
                title_snapshot=it.get("title") or "",
                quantity=pricing.validate_quantity(it["quantity"]),
                price=it["price"],
                discount=0,
            )
        )
    _recalculate(order, order.items)
    db.add(order)
    db.flush()
    logger.info("order_created", order_id=order.id, user_id=user_id, total=order.total, items=len(order.items))
    return order


def get_order(db: Session, order_id: int, user_id: str | None = None) -> models.Order:
    order = db.get(models.Order, order_id)
    if order is None or (user_id is not None and order.user_id != user_id):
        raise NotFoundError("Order not found")
    return order


@transactional
def update_order_status(db: Session, order_id: int, status) -> models.Order:
    status = ORDER_TIMELINE.parse(status)
    order = _lock_order(db, order_id)
    previous = order.status
    if _set_status(order, status):
        logger.info("order_status_updated", order_id=order.id, from_status=previous.value, to_status=status.value)
    return order


@transactional
def cancel_order(db: Session, order_id: int, user_id: str) -> models.Order:
    order = _lock_order(db, order_id)
    if order.user_id != user_id:
        raise NotFoundError("Order not found")
    if order.status == OrderStatus.CANCELLED:
        return order
    if order.status not in CUSTOMER_CANCELLABLE:
        raise ValidationError("Only pending or processing orders can be cancelled")
    previous = order.status
    _set_status(order, OrderStatus.CANCELLED)
    logger.info("order_cancelled", order_id=order.id, from_status=previous.value)
    return order


@transactional
def update_order_item_discount(db: Session, item_id: int, discount: int) -> models.Order:
    order, item, lines = _lock_item(db, item_id)
    pricing.validate_item_discount(item.price, item.quantity, discount)
    item.discount = discount
    _recalculate(order, lines)
    logger.info("order_item_discount_updated", order_id=order.id, item_id=item.id, discount=discount, total=order.total)
    return order


@transactional
def update_order_item_quantity(db: Session, item_id: int, quantity) -> models.Order:
    quantity = pricing.validate_quantity(quantity)
    order, item, lines = _lock_item(db, item_id)
    item.quantity = quantity
    clamped = pricing.clamp_discount(item.price, quantity, item.discount)
    if clamped != item.discount:
        logger.info("order_item_discount_clamped", item_id=item.id, old=item.discount, new=clamped)
        item.discount = clamped
    _recalculate(order, lines)
    logger.info("order_item_quantity_updated", order_id=order.id, item_id=item.id, quantity=quantity, total=order.total)
    return order


@transactional
def update_order_discount(db: Session, order_id: int, total_discount: int) -> models.Order:
    """Set the order's overall discount by spreading it across its line items."""
    order = _lock_order(db, order_id)
    lines = _lock_lines(db, order.id)
    discounts = pricing.distribute_order_discount(lines, total_discount)
    for line, discount in zip(lines, discounts):
        line.discount = discount
    _recalculate(order, lines)
    logger.info("order_discount_updated", order_id=order.id, discount=total_discount, total=order.total)
    return order
