# Overview: Pytest coverage for the purchase order lifecycle and stock receipt.

import pytest

from bizledger.errors import InvalidState, NotFound, ValidationFailed
from bizledger.extensions import db
from bizledger.models import LedgerEntry, Notification
from bizledger.services import purchase_order_service
from bizledger.services.purchase_order_service import can_transition


def _order(tenant, item, quantity=20, **kwargs):
    return purchase_order_service.create_purchase_order(
        tenant_id=tenant.id,
        supplier_name="Lafarge Supplies",
        items=[{"item_id": item.id, "quantity": quantity, **kwargs}],
    )


def _move(tenant, po, status):
    return purchase_order_service.update_purchase_order_status(
        tenant_id=tenant.id, purchase_order_id=po.id, status=status
    )


class TestTransitions:

    @pytest.mark.parametrize("current,target", [
        ("PENDING", "ORDERED"),
        ("PENDING", "SHIPPED"),
        ("PENDING", "COMPLETED"),
        ("ORDERED", "SHIPPED"),
        ("ORDERED", "COMPLETED"),
        ("SHIPPED", "COMPLETED"),
        ("PENDING", "CANCELLED"),
        ("SHIPPED", "CANCELLED"),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("ORDERED", "PENDING"),
        ("SHIPPED", "ORDERED"),
        ("ORDERED", "ORDERED"),
        ("COMPLETED", "CANCELLED"),
        ("CANCELLED", "ORDERED"),
        ("COMPLETED", "SHIPPED"),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)


class TestPurchaseOrders:

    def test_create_numbers_and_totals(self, tenant_a, item_a):
        po = _order(tenant_a, item_a, quantity=20)

        assert po.order_number == "PO-00001"
        assert po.status == "PENDING"
        assert po.total_amount_cents == 20 * 600
        assert po.lines[0].unit_cost_cents == 600
        assert item_a.quantity == 10

    def test_explicit_unit_cost(self, tenant_a, item_a):
        po = _order(tenant_a, item_a, quantity=4, unit_cost_cents=550)
        assert po.total_amount_cents == 2200

    def test_unknown_item_rejects_whole_order(self, tenant_a, item_a):
        with pytest.raises(NotFound):
            purchase_order_service.create_purchase_order(
                tenant_id=tenant_a.id,
                supplier_name="Lafarge Supplies",
                items=[{"item_id": item_a.id, "quantity": 1}, {"item_id": 999999, "quantity": 1}],
            )
        second = _order(tenant_a, item_a)
        assert second.order_number == "PO-00001"

    def test_empty_order_is_rejected(self, tenant_a):
        with pytest.raises(ValidationFailed):
            purchase_order_service.create_purchase_order(
                tenant_id=tenant_a.id, supplier_name="Nobody", items=[]
            )

    def test_completion_receives_stock_without_alerts(self, tenant_a, make_item):
        item = make_item(tenant_a, quantity=2, min_stock_level=5)
        po = _order(tenant_a, item, quantity=1)

        _move(tenant_a, po, "ORDERED")
        po = _move(tenant_a, po, "COMPLETED")

        assert po.status == "COMPLETED"
        assert po.received_date is not None
        assert item.quantity == 3
        assert item.stock_level == "low-stock"
        assert item.last_restocked_at is not None
        assert db.session.query(Notification).filter_by(tenant_id=tenant_a.id).count() == 0

        entry = (
            db.session.query(LedgerEntry)
            .filter_by(item_id=item.id, entry_type="PO_RECEIPT")
            .one()
        )
        assert entry.quantity_delta == 1
        assert entry.source_type == "purchase_order"
        assert entry.source_id == po.id

    def test_backward_move_is_rejected(self, tenant_a, item_a):
        po = _order(tenant_a, item_a)
        _move(tenant_a, po, "SHIPPED")

        with pytest.raises(InvalidState) as exc_info:
            _move(tenant_a, po, "ORDERED")
        assert exc_info.value.details["current_status"] == "SHIPPED"

    def test_completed_order_cannot_be_received_twice(self, tenant_a, item_a):
        po = _order(tenant_a, item_a, quantity=5)
        _move(tenant_a, po, "COMPLETED")

        with pytest.raises(InvalidState):
            _move(tenant_a, po, "COMPLETED")
        assert item_a.quantity == 15

    def test_cancel_does_not_touch_stock(self, tenant_a, item_a):
        po = _order(tenant_a, item_a)
        po = _move(tenant_a, po, "cancelled")

        assert po.status == "CANCELLED"
        assert po.cancelled_at is not None
        assert item_a.quantity == 10
        with pytest.raises(InvalidState):
            _move(tenant_a, po, "COMPLETED")

    def test_unknown_status(self, tenant_a, item_a):
        po = _order(tenant_a, item_a)
        with pytest.raises(ValidationFailed):
            _move(tenant_a, po, "LOST")

    def test_list_by_status(self, tenant_a, item_a):
        first = _order(tenant_a, item_a)
        _order(tenant_a, item_a)
        _move(tenant_a, first, "ORDERED")

        result = purchase_order_service.list_purchase_orders(tenant_id=tenant_a.id, status="ordered")
        assert [po.id for po in result["items"]] == [first.id]
