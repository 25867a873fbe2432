# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that one tenant can never read or move another
tenant's rows. A foreign id must look exactly like a missing one (NotFound),
so existence is never revealed.

Test Coverage:
- Inventory: read, update, stock moves
- Sales: create with foreign item/customer, read, return, delete
- Consumption: internal use against a foreign site
- Purchase orders: foreign item lines, foreign status change
- Notifications and listings scoped per tenant
"""

import pytest

from bizledger.errors import NotFound
from bizledger.services import (
    alert_service,
    customer_service,
    internal_use_service,
    inventory_service,
    purchase_order_service,
    sales_service,
    site_service,
)


class TestInventoryIsolation:

    def test_get_foreign_item(self, tenant_a, tenant_b, make_item):
        item_b = make_item(tenant_b)
        with pytest.raises(NotFound):
            inventory_service.get_item(tenant_id=tenant_a.id, item_id=item_b.id)

    def test_update_foreign_item(self, tenant_a, tenant_b, make_item):
        item_b = make_item(tenant_b, name="Original")
        with pytest.raises(NotFound):
            inventory_service.update_item(tenant_id=tenant_a.id, item_id=item_b.id, changes={"name": "Hijacked"})
        assert item_b.name == "Original"

    def test_same_sku_in_both_tenants(self, tenant_a, tenant_b, make_item):
        a = make_item(tenant_a, sku="BRICK-01")
        b = make_item(tenant_b, sku="BRICK-01")
        assert a.id != b.id

    def test_listing_is_scoped(self, tenant_a, tenant_b, make_item):
        make_item(tenant_a)
        make_item(tenant_b)
        make_item(tenant_b)

        assert inventory_service.list_items(tenant_id=tenant_a.id)["total"] == 1
        assert inventory_service.list_items(tenant_id=tenant_b.id)["total"] == 2


class TestSalesIsolation:

    def test_sell_foreign_item(self, tenant_a, tenant_b, make_item):
        item_b = make_item(tenant_b)
        with pytest.raises(NotFound):
            sales_service.create_sale(tenant_id=tenant_a.id, items=[{"item_id": item_b.id, "quantity": 1}])
        assert item_b.quantity == 10

    def test_charge_foreign_customer(self, tenant_a, tenant_b, item_a):
        customer_b = customer_service.create_customer(tenant_id=tenant_b.id, name="Beta Customer")
        with pytest.raises(NotFound):
            sales_service.create_sale(
                tenant_id=tenant_a.id,
                items=[{"item_id": item_a.id, "quantity": 1}],
                customer_id=customer_b.id,
            )
        assert item_a.quantity == 10
        assert customer_b.total_spent_cents == 0

    def test_foreign_sale_operations(self, tenant_a, tenant_b, make_item):
        item_b = make_item(tenant_b)
        sale_b = sales_service.create_sale(tenant_id=tenant_b.id, items=[{"item_id": item_b.id, "quantity": 2}])

        with pytest.raises(NotFound):
            sales_service.get_sale(tenant_id=tenant_a.id, sale_id=sale_b.id)
        with pytest.raises(NotFound):
            sales_service.process_return(
                tenant_id=tenant_a.id, sale_id=sale_b.id, returned_items=[{"item_id": item_b.id, "quantity": 1}]
            )
        with pytest.raises(NotFound):
            sales_service.delete_sale(tenant_id=tenant_a.id, sale_id=sale_b.id)
        with pytest.raises(NotFound):
            sales_service.record_payment(tenant_id=tenant_a.id, sale_id=sale_b.id, amount_cents=100)

        assert item_b.quantity == 8


class TestOtherIsolation:

    def test_internal_use_on_foreign_site(self, tenant_a, tenant_b, item_a):
        site_b = site_service.create_site(tenant_id=tenant_b.id, name="Beta Tower", project_code="BT-1")
        with pytest.raises(NotFound):
            internal_use_service.create_internal_use(
                tenant_id=tenant_a.id, item_id=item_a.id, quantity=1, reason="x", site_id=site_b.id
            )
        assert item_a.quantity == 10

    def test_purchase_order_with_foreign_item(self, tenant_a, tenant_b, make_item):
        item_b = make_item(tenant_b)
        with pytest.raises(NotFound):
            purchase_order_service.create_purchase_order(
                tenant_id=tenant_a.id, supplier_name="Supplier", items=[{"item_id": item_b.id, "quantity": 1}]
            )

    def test_foreign_purchase_order_status(self, tenant_a, tenant_b, make_item):
        item_b = make_item(tenant_b)
        po_b = purchase_order_service.create_purchase_order(
            tenant_id=tenant_b.id, supplier_name="Supplier", items=[{"item_id": item_b.id, "quantity": 5}]
        )
        with pytest.raises(NotFound):
            purchase_order_service.update_purchase_order_status(
                tenant_id=tenant_a.id, purchase_order_id=po_b.id, status="COMPLETED"
            )
        assert item_b.quantity == 10

    def test_notifications_are_scoped(self, tenant_a, tenant_b, item_a, make_item):
        item_b = make_item(tenant_b)
        sales_service.create_sale(tenant_id=tenant_b.id, items=[{"item_id": item_b.id, "quantity": 10}])

        assert alert_service.list_notifications(tenant_id=tenant_a.id) == []
        feed_b = alert_service.list_notifications(tenant_id=tenant_b.id)
        assert len(feed_b) == 1

        with pytest.raises(NotFound):
            alert_service.mark_notification_read(tenant_id=tenant_a.id, notification_id=feed_b[0].id)
