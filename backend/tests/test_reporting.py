# Overview: Pytest coverage for reporting reads, daily snapshots and the ledger audit.

from datetime import date, timedelta

import pytest

from bizledger.errors import DuplicateKey, InvalidState, NotFound
from bizledger.extensions import db
from bizledger.models import DailyStockSnapshot, InventoryItem, Notification
from bizledger.services import inventory_service, reporting_service, sales_service
from bizledger.time_utils import day_bounds, today_utc


class TestInventoryStats:

    def test_counts_by_status(self, tenant_a, make_item):
        make_item(tenant_a, quantity=20, price_cents=100, cost_price_cents=50)
        make_item(tenant_a, quantity=3, min_stock_level=5, price_cents=200, cost_price_cents=150)
        make_item(tenant_a, quantity=0)
        discontinued = make_item(tenant_a, quantity=1, min_stock_level=0)
        inventory_service.set_status_override(
            tenant_id=tenant_a.id, item_id=discontinued.id, override="discontinued"
        )

        stats = reporting_service.inventory_stats(tenant_id=tenant_a.id)

        assert stats["total_items"] == 4
        assert stats["total_quantity"] == 24
        assert stats["total_retail_value_cents"] == 20 * 100 + 3 * 200 + 1 * 1000
        assert stats["total_cost_value_cents"] == 20 * 50 + 3 * 150 + 1 * 600
        assert stats["low_stock_count"] == 1
        assert stats["out_of_stock_count"] == 1
        assert stats["discontinued_count"] == 1
        assert stats["on_order_count"] == 0

    def test_status_filter_uses_override_first(self, tenant_a, make_item):
        item = make_item(tenant_a, quantity=0)
        inventory_service.set_status_override(tenant_id=tenant_a.id, item_id=item.id, override="on-order")

        on_order = inventory_service.list_items(tenant_id=tenant_a.id, status="on-order")
        out = inventory_service.list_items(tenant_id=tenant_a.id, status="out-of-stock")

        assert [i.id for i in on_order["items"]] == [item.id]
        assert out["items"] == []
        assert item.stock_level == "out-of-stock"


class TestSalesSummary:

    def test_revenue_cost_and_returns(self, tenant_a, item_a):
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[{"item_id": item_a.id, "quantity": 4}],
            amount_paid_cents=1000,
        )
        sales_service.process_return(
            tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 1}]
        )

        summary = reporting_service.sales_summary(tenant_id=tenant_a.id)

        assert summary["sales_count"] == 1
        assert summary["revenue_cents"] == 3000
        assert summary["amount_paid_cents"] == 0
        assert summary["outstanding_cents"] == 3000
        assert summary["cost_of_goods_cents"] == 3 * 600
        assert summary["gross_profit_cents"] == 3000 - 1800
        assert summary["units_sold"] == 3
        assert summary["units_returned"] == 1

    def test_window_excludes_other_days(self, tenant_a, item_a):
        sales_service.create_sale(tenant_id=tenant_a.id, items=[{"item_id": item_a.id, "quantity": 1}])
        tomorrow = today_utc() + timedelta(days=1)

        start, end = day_bounds(tomorrow)
        summary = reporting_service.sales_summary(tenant_id=tenant_a.id, start=start, end=end)
        assert summary["sales_count"] == 0


class TestLedgerHistory:

    def test_newest_first(self, tenant_a, item_a):
        sales_service.create_sale(tenant_id=tenant_a.id, items=[{"item_id": item_a.id, "quantity": 2}])

        history = reporting_service.item_ledger_history(tenant_id=tenant_a.id, item_id=item_a.id)
        assert [e.entry_type for e in history] == ["SALE", "OPENING_BALANCE"]

    def test_foreign_item(self, tenant_a, tenant_b, make_item):
        foreign = make_item(tenant_b)
        with pytest.raises(NotFound):
            reporting_service.item_ledger_history(tenant_id=tenant_a.id, item_id=foreign.id)


class TestDailySnapshots:

    def test_opening_and_closing_from_ledger(self, tenant_a, item_a):
        sales_service.create_sale(tenant_id=tenant_a.id, items=[{"item_id": item_a.id, "quantity": 3}])
        today = today_utc()

        snapshots = reporting_service.generate_daily_snapshots(tenant_id=tenant_a.id, day=today)

        assert len(snapshots) == 1
        snap = snapshots[0]
        assert snap.item_id == item_a.id
        assert snap.snapshot_date == today
        assert snap.opening_quantity == 0
        assert snap.closing_quantity == 7
        assert snap.to_dict()["net_change"] == 7

    def test_past_day_is_computed_from_ledger(self, tenant_a, item_a):
        yesterday = today_utc() - timedelta(days=1)
        snap = reporting_service.generate_daily_snapshots(tenant_id=tenant_a.id, day=yesterday)[0]
        assert snap.opening_quantity == 0
        assert snap.closing_quantity == 0

    def test_duplicate_snapshot(self, tenant_a, item_a, make_item):
        today = today_utc()
        reporting_service.generate_daily_snapshots(tenant_id=tenant_a.id, day=today)

        with pytest.raises(DuplicateKey):
            reporting_service.generate_daily_snapshots(tenant_id=tenant_a.id, day=today)

        make_item(tenant_a)
        created = reporting_service.generate_daily_snapshots(tenant_id=tenant_a.id, day=today, skip_existing=True)
        assert len(created) == 1
        assert len(reporting_service.list_snapshots(tenant_id=tenant_a.id, day=today)) == 2


class TestItemDeletionKeepsReferences:
    """An item that any report row points at keeps its catalog row."""

    def test_snapshotted_item_cannot_be_deleted(self, tenant_a, make_item):
        item = make_item(tenant_a, quantity=0)
        reporting_service.generate_daily_snapshots(tenant_id=tenant_a.id, day=date(2026, 10, 1))

        with pytest.raises(InvalidState) as exc_info:
            inventory_service.delete_item(tenant_id=tenant_a.id, item_id=item.id)

        assert exc_info.value.details["referenced_by"] == "daily_stock_snapshots"
        assert db.session.get(InventoryItem, item.id) is not None
        assert db.session.query(DailyStockSnapshot).filter_by(item_id=item.id).count() == 1

    def test_item_named_in_a_notification_cannot_be_deleted(self, tenant_a, make_item):
        item = make_item(tenant_a, quantity=0)
        db.session.add(Notification(
            tenant_id=tenant_a.id, kind="low_stock", title="Low stock", message="check", related_item_id=item.id
        ))
        db.session.commit()

        with pytest.raises(InvalidState):
            inventory_service.delete_item(tenant_id=tenant_a.id, item_id=item.id)
        assert db.session.get(InventoryItem, item.id) is not None

    def test_unreferenced_item_is_deleted(self, tenant_a, make_item):
        item = make_item(tenant_a, quantity=0)
        item_id = item.id

        inventory_service.delete_item(tenant_id=tenant_a.id, item_id=item_id)

        assert db.session.get(InventoryItem, item_id) is None


class TestLedgerAudit:

    def test_detects_direct_quantity_edit(self, tenant_a, item_a):
        assert reporting_service.ledger_consistency_audit(tenant_id=tenant_a.id)["consistent"]

        db.session.query(InventoryItem).filter_by(id=item_a.id).update({"quantity": 99})
        db.session.commit()

        audit = reporting_service.ledger_consistency_audit(tenant_id=tenant_a.id)
        assert not audit["consistent"]
        issue = audit["issues"][0]
        assert issue["item_id"] == item_a.id
        assert issue["ledger_quantity"] == 10
        assert "quantity_mismatch" in issue["problems"]
