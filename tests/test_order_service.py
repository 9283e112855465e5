import pytest

from conftest import create_order
from storefront.domain.errors import NotFoundError, ValidationError
from storefront.domain.timeline import OrderStatus
from storefront.services import orders

MAIN_FLOW_FIELDS = ("request_at", "approved_at", "paid_at", "shipped_at", "delivered_at")


class TestCheckout:
    def test_creates_pending_order_with_totals(self, db):
        order = create_order(db, [(100, 2), (300, 1)], shipping_fee=50)
        assert order.status == OrderStatus.PENDING
        assert order.request_at is not None
        assert (order.subtotal, order.discount, order.total) == (500, 0, 550)
        assert [i.quantity for i in order.items] == [2, 1]
        assert order.shipping_address["city"] == "Galway"

    def test_empty_cart_rejected(self, db):
        with pytest.raises(ValidationError, match="Cart is empty"):
            orders.checkout(db, "user-1", [], 0, None)

    def test_fractional_quantity_rejected(self, db):
        with pytest.raises(ValidationError, match="whole number"):
            orders.checkout(db, "user-1", [{"product_id": 1, "price": 10, "quantity": 1.5}], 0, None)

    @pytest.mark.parametrize("quantity", [float("nan"), float("inf"), 1e20])
    def test_unusable_line_quantity_rejected(self, db, quantity):
        with pytest.raises(ValidationError, match="Quantity"):
            orders.checkout(db, "user-1", [{"product_id": 1, "price": 10, "quantity": quantity}], 0, None)

    def test_infinite_item_quantity_leaves_order_untouched(self, db):
        order = create_order(db, [(100, 3)])
        with pytest.raises(ValidationError, match="whole number"):
            orders.update_order_item_quantity(db, order.items[0].id, float("inf"))
        order = orders.get_order(db, order.id)
        assert order.items[0].quantity == 3
        assert order.subtotal == 300

    def test_get_order_is_scoped_to_owner(self, db):
        order = create_order(db, [(100, 1)])
        assert orders.get_order(db, order.id, "user-1").id == order.id
        with pytest.raises(NotFoundError, match="Order not found"):
            orders.get_order(db, order.id, "someone-else")


class TestOrderStatus:
    def test_skip_to_delivered_backfills(self, db):
        order = create_order(db, [(100, 1)])
        orders.update_order_status(db, order.id, "DELIVERED")
        order = orders.get_order(db, order.id)
        assert order.status == OrderStatus.DELIVERED
        assert all(getattr(order, f) is not None for f in MAIN_FLOW_FIELDS)

    def test_same_status_is_idempotent(self, db):
        order = create_order(db, [(100, 1)])
        orders.update_order_status(db, order.id, "PROCESSING")
        approved_at = orders.get_order(db, order.id).approved_at
        orders.update_order_status(db, order.id, "PROCESSING")
        assert orders.get_order(db, order.id).approved_at == approved_at

    def test_backward_clears_later_steps(self, db):
        order = create_order(db, [(100, 1)])
        orders.update_order_status(db, order.id, OrderStatus.DELIVERED)
        orders.update_order_status(db, order.id, OrderStatus.PROCESSING)
        order = orders.get_order(db, order.id)
        assert order.approved_at is not None
        assert order.paid_at is None
        assert order.shipped_at is None
        assert order.delivered_at is None

    def test_cancel_and_reopen(self, db):
        order = create_order(db, [(100, 1)])
        orders.update_order_status(db, order.id, "PROCESSING")
        orders.update_order_status(db, order.id, "CANCELLED")
        assert orders.get_order(db, order.id).cancelled_at is not None
        orders.update_order_status(db, order.id, "PROCESSING")
        order = orders.get_order(db, order.id)
        assert order.cancelled_at is None
        assert order.shipped_at is None

    def test_unknown_status_rejected(self, db):
        order = create_order(db, [(100, 1)])
        with pytest.raises(ValidationError, match="Invalid status"):
            orders.update_order_status(db, order.id, "MISPLACED")
        assert orders.get_order(db, order.id).status == OrderStatus.PENDING

    def test_missing_order(self, db):
        with pytest.raises(NotFoundError, match="Order not found"):
            orders.update_order_status(db, 999, "PAID")

    def test_customer_cancel(self, db):
        order = create_order(db, [(100, 1)])
        orders.cancel_order(db, order.id, "user-1")
        assert orders.get_order(db, order.id).status == OrderStatus.CANCELLED

    def test_customer_cannot_cancel_shipped_order(self, db):
        order = create_order(db, [(100, 1)])
        orders.update_order_status(db, order.id, "SHIPPED")
        with pytest.raises(ValidationError, match="Only pending or processing orders"):
            orders.cancel_order(db, order.id, "user-1")

    def test_customer_cannot_cancel_someone_elses_order(self, db):
        order = create_order(db, [(100, 1)])
        with pytest.raises(NotFoundError):
            orders.cancel_order(db, order.id, "intruder")


class TestOrderPricing:
    def test_order_discount_is_spread_exactly(self, db):
        order = create_order(db, [(100, 1), (250, 1), (650, 1)], shipping_fee=20)
        orders.update_order_discount(db, order.id, 101)
        order = orders.get_order(db, order.id)
        assert [i.discount for i in order.items] == [10, 25, 66]
        assert order.discount == 0
        assert order.total == 1000 + 20 - 101

    def test_order_discount_above_subtotal_rejected(self, db):
        order = create_order(db, [(100, 1)])
        with pytest.raises(ValidationError, match="Discount exceeds order subtotal"):
            orders.update_order_discount(db, order.id, 101)
        assert orders.get_order(db, order.id).total == 100

    def test_item_discount_updates_total(self, db):
        order = create_order(db, [(100, 2), (50, 1)], shipping_fee=10)
        orders.update_order_item_discount(db, order.items[0].id, 40)
        order = orders.get_order(db, order.id)
        assert order.items[0].discount == 40
        assert order.total == 250 + 10 - 40

    def test_item_discount_above_item_total_rejected(self, db):
        order = create_order(db, [(100, 2)])
        with pytest.raises(ValidationError, match="Discount exceeds item total"):
            orders.update_order_item_discount(db, order.items[0].id, 201)

    def test_negative_item_discount_rejected(self, db):
        order = create_order(db, [(100, 2)])
        with pytest.raises(ValidationError, match="Discount cannot be negative"):
            orders.update_order_item_discount(db, order.items[0].id, -1)

    def test_missing_item(self, db):
        with pytest.raises(NotFoundError, match="Item not found"):
            orders.update_order_item_discount(db, 12345, 1)

    def test_lowering_quantity_clamps_discount(self, db):
        order = create_order(db, [(100, 5)])
        item_id = order.items[0].id
        orders.update_order_item_discount(db, item_id, 400)
        orders.update_order_item_quantity(db, item_id, 2)
        order = orders.get_order(db, order.id)
        assert order.items[0].quantity == 2
        assert order.items[0].discount == 200
        assert order.subtotal == 200
        assert order.total == 0

    @pytest.mark.parametrize("quantity, message", [(0, "at least 1"), (1.5, "whole number")])
    def test_invalid_quantity_rejected(self, db, quantity, message):
        order = create_order(db, [(100, 5)])
        with pytest.raises(ValidationError, match=message):
            orders.update_order_item_quantity(db, order.items[0].id, quantity)
        assert orders.get_order(db, order.id).items[0].quantity == 5

    def test_discount_then_ship_scenario(self, db):
        order = create_order(db, [(200, 1), (300, 1)], shipping_fee=50)
        assert order.subtotal == 500

        orders.update_order_discount(db, order.id, 50)
        assert orders.get_order(db, order.id).total == 500

        orders.update_order_status(db, order.id, "SHIPPED")
        order = orders.get_order(db, order.id)
        assert order.status == OrderStatus.SHIPPED
        assert order.request_at is not None
        assert order.approved_at is not None
        assert order.paid_at is not None
        assert order.shipped_at is not None
        assert order.delivered_at is None
        assert sum(i.discount for i in order.items) == 50
