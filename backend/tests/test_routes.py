# Overview: Pytest coverage for the HTTP layer: tenant headers, status codes and error payloads.

"""
API Route Tests

Drive the blueprints through the Flask test client to check what clients
actually see: 401 without tenant context, 201 on creation, and the
LedgerError taxonomy mapped to stable {"error", "code", "details"} bodies.
"""

import pytest

from bizledger.extensions import db
from bizledger.models import Tenant


class TestTenantContext:

    def test_missing_tenant_header(self, client, db_session):
        response = client.get('/api/inventory/')
        assert response.status_code == 401
        assert response.get_json()["code"] == "tenant_required"

    def test_unknown_tenant(self, client, db_session):
        response = client.get('/api/inventory/', headers={'X-Tenant-Id': '999999'})
        assert response.status_code == 401

    def test_inactive_tenant(self, client, tenant_a, tenant_headers):
        db.session.query(Tenant).filter_by(id=tenant_a.id).update({"is_active": False})
        db.session.commit()

        response = client.get('/api/inventory/', headers=tenant_headers(tenant_a))
        assert response.status_code == 401

    def test_health_needs_no_tenant(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok", "database": True}


class TestInventoryRoutes:

    def test_create_and_fetch_item(self, client, tenant_a, tenant_headers):
        response = client.post('/api/inventory/', headers=tenant_headers(tenant_a, user_id=3), json={
            "sku": "rebar-12",
            "name": "Rebar 12mm",
            "quantity": 40,
            "min_stock_level": 10,
            "price_cents": 900,
            "cost_price_cents": 700,
        })
        assert response.status_code == 201
        item = response.get_json()["item"]
        assert item["quantity"] == 40
        assert item["status"] == "in-stock"

        fetched = client.get(f'/api/inventory/{item["id"]}', headers=tenant_headers(tenant_a))
        assert fetched.status_code == 200
        assert fetched.get_json()["item"]["name"] == "Rebar 12mm"

        ledger = client.get(f'/api/inventory/{item["id"]}/ledger', headers=tenant_headers(tenant_a))
        entries = ledger.get_json()["entries"]
        assert [e["entry_type"] for e in entries] == ["OPENING_BALANCE"]
        assert entries[0]["actor_user_id"] == 3

    def test_missing_fields(self, client, tenant_a, tenant_headers):
        response = client.post('/api/inventory/', headers=tenant_headers(tenant_a), json={"sku": "X-1"})
        assert response.status_code == 400
        assert response.get_json()["code"] == "validation_failed"

    def test_foreign_item_is_not_found(self, client, tenant_a, tenant_b, make_item, tenant_headers):
        item_b = make_item(tenant_b)
        response = client.get(f'/api/inventory/{item_b.id}', headers=tenant_headers(tenant_a))
        assert response.status_code == 404
        assert response.get_json()["code"] == "not_found"

    def test_status_override(self, client, tenant_a, item_a, tenant_headers):
        response = client.post(
            f'/api/inventory/{item_a.id}/status-override',
            headers=tenant_headers(tenant_a),
            json={"override": "discontinued"},
        )
        assert response.status_code == 200
        assert response.get_json()["item"]["status"] == "discontinued"

        bad = client.post(
            f'/api/inventory/{item_a.id}/status-override',
            headers=tenant_headers(tenant_a),
            json={"override": "sold-out"},
        )
        assert bad.status_code == 400


class TestSalesRoutes:

    def test_create_sale(self, client, tenant_a, item_a, tenant_headers):
        response = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 2}],
            "amount_paid_cents": 2000,
        })
        assert response.status_code == 201
        sale = response.get_json()["sale"]
        assert sale["receipt_number"] == "S-00001"
        assert sale["payment_status"] == "PAID"
        assert sale["lines"][0]["item_sku"] == "CEM-50KG"

        listed = client.get('/api/sales/', headers=tenant_headers(tenant_a)).get_json()
        assert listed["total"] == 1
        assert "lines" not in listed["items"][0]

    def test_insufficient_stock_maps_to_conflict(self, client, tenant_a, item_a, tenant_headers):
        response = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 11}],
        })
        assert response.status_code == 409
        body = response.get_json()
        assert body["code"] == "insufficient_stock"
        assert body["details"]["available"] == 10
        assert body["details"]["requested"] == 11
        assert item_a.quantity == 10

    def test_zero_quantity(self, client, tenant_a, item_a, tenant_headers):
        response = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 0}],
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_quantity"

    def test_items_must_be_a_list(self, client, tenant_a, tenant_headers):
        response = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={"items": "all of them"})
        assert response.status_code == 400

    def test_payment_and_return(self, client, tenant_a, item_a, tenant_headers):
        sale = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 3}],
        }).get_json()["sale"]

        paid = client.post(
            f'/api/sales/{sale["id"]}/payments', headers=tenant_headers(tenant_a), json={"amount_cents": 1000}
        )
        assert paid.status_code == 200
        assert paid.get_json()["sale"]["payment_status"] == "PARTIAL"

        returned = client.post(
            f'/api/sales/{sale["id"]}/returns',
            headers=tenant_headers(tenant_a),
            json={"items": [{"item_id": item_a.id, "quantity": 1}]},
        )
        assert returned.status_code == 200
        assert returned.get_json()["sale"]["lines"][0]["returned_quantity"] == 1
        assert item_a.quantity == 8

    def test_delete_sale(self, client, tenant_a, item_a, tenant_headers):
        sale = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 4}],
        }).get_json()["sale"]

        response = client.delete(f'/api/sales/{sale["id"]}', headers=tenant_headers(tenant_a))
        assert response.status_code == 200
        assert item_a.quantity == 10

        gone = client.get(f'/api/sales/{sale["id"]}', headers=tenant_headers(tenant_a))
        assert gone.status_code == 404

    @pytest.mark.parametrize("method", [5, ["CASH"], {"type": "CASH"}])
    def test_non_string_payment_method(self, client, tenant_a, item_a, tenant_headers, method):
        response = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 1}],
            "payment_method": method,
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "validation_failed"
        assert item_a.quantity == 10

    def test_return_packaging(self, client, tenant_a, tenant_headers):
        cylinder = client.post('/api/inventory/', headers=tenant_headers(tenant_a), json={
            "sku": "CYL-6", "name": "Empty cylinder 6kg", "quantity": 5, "is_reusable_packaging": True,
        }).get_json()["item"]
        gas = client.post('/api/inventory/', headers=tenant_headers(tenant_a), json={
            "sku": "GAS-6", "name": "Gas 6kg", "quantity": 5, "price_cents": 1500,
            "packaging_item_id": cylinder["id"], "packaging_deposit_cents": 300,
        }).get_json()["item"]
        assert gas["packaging_item_id"] == cylinder["id"]

        sale = client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": gas["id"], "quantity": 2}],
        }).get_json()["sale"]
        assert sale["total_amount_cents"] == 3600

        response = client.post(
            f'/api/sales/{sale["id"]}/items/{gas["id"]}/return-packaging',
            headers=tenant_headers(tenant_a),
            json={"quantity": 1},
        )
        assert response.status_code == 200
        body = response.get_json()["sale"]
        assert body["total_amount_cents"] == 3300
        assert body["lines"][0]["packaging_quantity_returned"] == 1

        too_many = client.post(
            f'/api/sales/{sale["id"]}/items/{gas["id"]}/return-packaging',
            headers=tenant_headers(tenant_a),
            json={"quantity": 2},
        )
        assert too_many.status_code == 400
        assert too_many.get_json()["code"] == "invalid_quantity"

        report = client.get('/api/reports/packaging', headers=tenant_headers(tenant_a)).get_json()
        assert report["items"][0]["outstanding"] == 1
        assert report["total_deposits_held_cents"] == 300


class TestCustomerRoutes:

    def test_balance_and_payment(self, client, tenant_a, item_a, tenant_headers):
        customer = client.post(
            '/api/customers/', headers=tenant_headers(tenant_a), json={"name": "Sam Mason"}
        ).get_json()["customer"]

        client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 2}],
            "customer_id": customer["id"],
        })

        fetched = client.get(f'/api/customers/{customer["id"]}', headers=tenant_headers(tenant_a)).get_json()
        assert fetched["customer"]["current_balance_cents"] == 2000

        paid = client.post(
            f'/api/customers/{customer["id"]}/payments',
            headers=tenant_headers(tenant_a),
            json={"amount_cents": 500},
        )
        assert paid.status_code == 200
        assert paid.get_json()["customer"]["current_balance_cents"] == 1500


class TestPurchaseOrderRoutes:

    def test_lifecycle(self, client, tenant_a, item_a, tenant_headers):
        created = client.post('/api/purchase-orders/', headers=tenant_headers(tenant_a), json={
            "supplier_name": "Lafarge Supplies",
            "items": [{"item_id": item_a.id, "quantity": 25}],
        })
        assert created.status_code == 201
        po = created.get_json()["purchase_order"]
        assert po["order_number"] == "PO-00001"

        url = f'/api/purchase-orders/{po["id"]}/status'
        shipped = client.post(url, headers=tenant_headers(tenant_a), json={"status": "SHIPPED"})
        assert shipped.status_code == 200

        backward = client.post(url, headers=tenant_headers(tenant_a), json={"status": "ORDERED"})
        assert backward.status_code == 409
        assert backward.get_json()["code"] == "invalid_state"

        done = client.post(url, headers=tenant_headers(tenant_a), json={"status": "COMPLETED"})
        assert done.get_json()["purchase_order"]["status"] == "COMPLETED"
        assert item_a.quantity == 35

        listed = client.get('/api/purchase-orders/?status=COMPLETED', headers=tenant_headers(tenant_a))
        assert listed.get_json()["total"] == 1


class TestConsumptionRoutes:

    def test_internal_use_against_site(self, client, tenant_a, item_a, site_a, tenant_headers):
        created = client.post('/api/internal-use/', headers=tenant_headers(tenant_a), json={
            "item_id": item_a.id, "quantity": 2, "reason": "Columns", "site_id": site_a.id,
        })
        assert created.status_code == 201
        assert created.get_json()["record"]["total_value_cents"] == 1200

        summary = client.get(f'/api/sites/{site_a.id}', headers=tenant_headers(tenant_a)).get_json()
        assert summary["site"]["expenditure_cents"] == 1200

        totals = client.get('/api/internal-use/totals', headers=tenant_headers(tenant_a)).get_json()
        assert totals["count"] == 1

    def test_adjustment(self, client, tenant_a, item_a, tenant_headers):
        created = client.post('/api/stock-adjustments/', headers=tenant_headers(tenant_a), json={
            "item_id": item_a.id, "quantity": 1, "adjustment_type": "damaged",
        })
        assert created.status_code == 201
        adjustment_id = created.get_json()["adjustment"]["id"]

        fetched = client.get(f'/api/stock-adjustments/{adjustment_id}', headers=tenant_headers(tenant_a))
        assert fetched.get_json()["adjustment"]["adjustment_type"] == "damaged"

        deleted = client.delete(f'/api/stock-adjustments/{adjustment_id}', headers=tenant_headers(tenant_a))
        assert deleted.status_code == 200
        assert item_a.quantity == 10


class TestNotificationRoutes:

    def test_feed_and_mark_read(self, client, tenant_a, item_a, tenant_headers):
        client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 10}],
        })

        feed = client.get('/api/notifications/?unread=true', headers=tenant_headers(tenant_a)).get_json()
        assert len(feed["notifications"]) == 1
        alert = feed["notifications"][0]
        assert alert["kind"] == "out_of_stock"
        assert alert["related_item_id"] == item_a.id

        read = client.post(f'/api/notifications/{alert["id"]}/read', headers=tenant_headers(tenant_a))
        assert read.get_json()["notification"]["is_read"] is True

        unread = client.get('/api/notifications/?unread=true', headers=tenant_headers(tenant_a)).get_json()
        assert unread["notifications"] == []


class TestReportRoutes:

    def test_stats_summary_and_audit(self, client, tenant_a, item_a, tenant_headers):
        client.post('/api/sales/', headers=tenant_headers(tenant_a), json={
            "items": [{"item_id": item_a.id, "quantity": 6}],
        })

        stats = client.get('/api/reports/inventory-stats', headers=tenant_headers(tenant_a)).get_json()
        assert stats["low_stock_count"] == 1

        summary = client.get('/api/reports/sales-summary', headers=tenant_headers(tenant_a)).get_json()
        assert summary["revenue_cents"] == 6000

        audit = client.get('/api/reports/ledger-audit', headers=tenant_headers(tenant_a)).get_json()
        assert audit["consistent"] is True

    def test_snapshots(self, client, tenant_a, item_a, tenant_headers):
        created = client.post('/api/reports/snapshots', headers=tenant_headers(tenant_a), json={})
        assert created.status_code == 201
        assert len(created.get_json()["snapshots"]) == 1

        listed = client.get('/api/reports/snapshots', headers=tenant_headers(tenant_a)).get_json()
        assert listed["snapshots"][0]["closing_quantity"] == 10

        bad_date = client.post(
            '/api/reports/snapshots', headers=tenant_headers(tenant_a), json={"date": "yesterday"}
        )
        assert bad_date.status_code == 400
