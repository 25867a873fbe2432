# Overview: Service-layer read models over the ledger: stats, history, snapshots and audits.

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import case, func

from ..errors import DuplicateKey, NotFound
from ..extensions import db
from ..models import (
    DailyStockSnapshot,
    InternalUseRecord,
    InventoryItem,
    LedgerEntry,
    Sale,
    SaleLine,
)
from ..time_utils import day_bounds
from . import site_service
from .ledger_service import ledger_transaction
from .status_service import (
    STATUS_DISCONTINUED,
    STATUS_LOW_STOCK,
    STATUS_ON_ORDER,
    STATUS_OUT_OF_STOCK,
    derive_stock_level,
)


logger = logging.getLogger(__name__)


# =============================================================================
# INVENTORY
# =============================================================================

def inventory_stats(*, tenant_id: int) -> dict:
    """Headline numbers for the inventory dashboard."""
    def _count(condition):
        return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

    row = (
        db.session.query(
            func.count(InventoryItem.id),
            func.coalesce(func.sum(InventoryItem.quantity), 0),
            func.coalesce(func.sum(InventoryItem.total_value_cents), 0),
            func.coalesce(func.sum(InventoryItem.quantity * InventoryItem.cost_price_cents), 0),
            _count(InventoryItem.status == STATUS_LOW_STOCK),
            _count(InventoryItem.status == STATUS_OUT_OF_STOCK),
            _count(InventoryItem.status == STATUS_ON_ORDER),
            _count(InventoryItem.status == STATUS_DISCONTINUED),
        )
        .filter(InventoryItem.tenant_id == tenant_id)
        .one()
    )
    return {
        "total_items": int(row[0]),
        "total_quantity": int(row[1]),
        "total_retail_value_cents": int(row[2]),
        "total_cost_value_cents": int(row[3]),
        "low_stock_count": int(row[4]),
        "out_of_stock_count": int(row[5]),
        "on_order_count": int(row[6]),
        "discontinued_count": int(row[7]),
    }


def item_ledger_history(*, tenant_id: int, item_id: int, limit: int = 100) -> list[LedgerEntry]:
    exists = (
        db.session.query(InventoryItem.id)
        .filter(InventoryItem.id == item_id, InventoryItem.tenant_id == tenant_id)
        .first()
    )
    if not exists:
        raise NotFound("Inventory item not found", {"id": item_id})
    return (
        db.session.query(LedgerEntry)
        .filter(LedgerEntry.tenant_id == tenant_id, LedgerEntry.item_id == item_id)
        .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


# =============================================================================
# SALES
# =============================================================================

def sales_summary(*, tenant_id: int, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    """
    Revenue, cost of goods and receivables for a period.

    Revenue is the sales' current totals (already net of returns); cost of
    goods uses the cost snapshot on each line for the units still sold.
    """
    sale_filters = [Sale.tenant_id == tenant_id]
    if start:
        sale_filters.append(Sale.sale_date >= start)
    if end:
        sale_filters.append(Sale.sale_date < end)

    count, revenue, paid = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount_cents), 0),
            func.coalesce(func.sum(Sale.amount_paid_cents), 0),
        )
        .filter(*sale_filters)
        .one()
    )

    net_units = SaleLine.quantity - SaleLine.returned_quantity
    cogs, units_sold, units_returned = (
        db.session.query(
            func.coalesce(func.sum(net_units * SaleLine.cost_price_cents), 0),
            func.coalesce(func.sum(net_units), 0),
            func.coalesce(func.sum(SaleLine.returned_quantity), 0),
        )
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(*sale_filters)
        .one()
    )

    revenue = int(revenue)
    cogs = int(cogs)
    return {
        "sales_count": int(count),
        "revenue_cents": revenue,
        "amount_paid_cents": int(paid),
        "outstanding_cents": max(0, revenue - int(paid)),
        "cost_of_goods_cents": cogs,
        "gross_profit_cents": revenue - cogs,
        "units_sold": int(units_sold),
        "units_returned": int(units_returned),
    }


def packaging_report(*, tenant_id: int, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    """
    Reusable containers out with customers and the deposits held against them.

    Grouped per container item. Deposits held = charged - refunded; sales
    that were deleted no longer count.
    """
    sale_filters = [Sale.tenant_id == tenant_id, SaleLine.reusable_packaging_item_id.isnot(None)]
    if start:
        sale_filters.append(Sale.sale_date >= start)
    if end:
        sale_filters.append(Sale.sale_date < end)

    rows = (
        db.session.query(
            InventoryItem.id,
            InventoryItem.sku,
            InventoryItem.name,
            func.coalesce(func.sum(SaleLine.quantity), 0),
            func.coalesce(func.sum(SaleLine.packaging_quantity_returned), 0),
            func.coalesce(func.sum(SaleLine.quantity * SaleLine.packaging_deposit_charged_cents), 0),
            func.coalesce(
                func.sum(SaleLine.packaging_quantity_returned * SaleLine.packaging_deposit_charged_cents), 0
            ),
        )
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(InventoryItem, InventoryItem.id == SaleLine.reusable_packaging_item_id)
        .filter(*sale_filters)
        .group_by(InventoryItem.id, InventoryItem.sku, InventoryItem.name)
        .order_by(InventoryItem.sku)
        .all()
    )

    items = []
    for item_id, sku, name, issued, returned, charged, refunded in rows:
        items.append({
            "packaging_item_id": item_id,
            "sku": sku,
            "name": name,
            "issued": int(issued),
            "returned": int(returned),
            "outstanding": int(issued) - int(returned),
            "deposits_charged_cents": int(charged),
            "deposits_refunded_cents": int(refunded),
            "deposits_held_cents": int(charged) - int(refunded),
        })
    return {
        "items": items,
        "total_deposits_charged_cents": sum(i["deposits_charged_cents"] for i in items),
        "total_deposits_refunded_cents": sum(i["deposits_refunded_cents"] for i in items),
        "total_deposits_held_cents": sum(i["deposits_held_cents"] for i in items),
    }


# =============================================================================
# DAILY SNAPSHOTS
# =============================================================================

def _ledger_quantity_before(session, *, tenant_id: int, item_id: int, before: datetime) -> int:
    total = (
        session.query(func.coalesce(func.sum(LedgerEntry.quantity_delta), 0))
        .filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.item_id == item_id,
            LedgerEntry.occurred_at < before,
        )
        .scalar()
    )
    return int(total)


def generate_daily_snapshots(
    *,
    tenant_id: int,
    day: date,
    item_id: Optional[int] = None,
    skip_existing: bool = False,
) -> list[DailyStockSnapshot]:
    """
    Record opening/closing quantities for `day`, computed from the ledger.

    Opening = sum of deltas before the day starts, closing = sum of deltas
    before the next day starts, so snapshots for past days can be generated
    after the fact and agree with the ledger. An existing (item, day)
    snapshot raises DuplicateKey unless skip_existing is set.
    """
    start, end = day_bounds(day)

    with ledger_transaction(tenant_id=tenant_id) as tx:
        if item_id is not None:
            items = [tx.get(InventoryItem, item_id, label="Inventory item")]
        else:
            items = (
                tx.session.query(InventoryItem)
                .filter(InventoryItem.tenant_id == tenant_id)
                .order_by(InventoryItem.id)
                .all()
            )

        existing = {
            row.item_id
            for row in tx.session.query(DailyStockSnapshot.item_id).filter(
                DailyStockSnapshot.tenant_id == tenant_id,
                DailyStockSnapshot.snapshot_date == day,
            )
        }

        created = []
        for item in items:
            if item.id in existing:
                if skip_existing:
                    continue
                raise DuplicateKey(
                    "Snapshot already exists for this item and date",
                    {"item_id": item.id, "date": day.isoformat()},
                )
            snapshot = DailyStockSnapshot(
                tenant_id=tenant_id,
                item_id=item.id,
                snapshot_date=day,
                item_name=item.name,
                item_sku=item.sku,
                opening_quantity=_ledger_quantity_before(tx.session, tenant_id=tenant_id, item_id=item.id, before=start),
                closing_quantity=_ledger_quantity_before(tx.session, tenant_id=tenant_id, item_id=item.id, before=end),
            )
            tx.session.add(snapshot)
            created.append(snapshot)

    logger.info("Generated %s daily snapshots for tenant %s on %s", len(created), tenant_id, day)
    return created


def list_snapshots(
    *,
    tenant_id: int,
    day: Optional[date] = None,
    item_id: Optional[int] = None,
    limit: int = 500,
) -> list[DailyStockSnapshot]:
    query = db.session.query(DailyStockSnapshot).filter(DailyStockSnapshot.tenant_id == tenant_id)
    if day:
        query = query.filter(DailyStockSnapshot.snapshot_date == day)
    if item_id is not None:
        query = query.filter(DailyStockSnapshot.item_id == item_id)
    return (
        query.order_by(DailyStockSnapshot.snapshot_date.desc(), DailyStockSnapshot.item_id)
        .limit(limit)
        .all()
    )


# =============================================================================
# AUDIT
# =============================================================================

def ledger_consistency_audit(*, tenant_id: int) -> dict:
    """
    Check every item against its ledger and its own derived fields.

    Reports items whose ledger deltas do not sum to the stored quantity, or
    whose total value / stock level are stale. An empty issue list means the
    ledger and inventory tables agree.
    """
    ledger_sums = dict(
        db.session.query(LedgerEntry.item_id, func.coalesce(func.sum(LedgerEntry.quantity_delta), 0))
        .filter(LedgerEntry.tenant_id == tenant_id)
        .group_by(LedgerEntry.item_id)
        .all()
    )

    issues = []
    items = db.session.query(InventoryItem).filter(InventoryItem.tenant_id == tenant_id).all()
    for item in items:
        ledger_qty = int(ledger_sums.get(item.id, 0))
        problems = []
        if ledger_qty != item.quantity:
            problems.append("quantity_mismatch")
        if item.total_value_cents != item.quantity * item.price_cents:
            problems.append("stale_total_value")
        if item.stock_level != derive_stock_level(item.quantity, item.min_stock_level):
            problems.append("stale_stock_level")
        if problems:
            issues.append({
                "item_id": item.id,
                "sku": item.sku,
                "quantity": item.quantity,
                "ledger_quantity": ledger_qty,
                "problems": problems,
            })

    return {"items_checked": len(items), "issues": issues, "consistent": not issues}


# =============================================================================
# SITES
# =============================================================================

def site_budget_summary(*, tenant_id: int, site_id: int) -> dict:
    site = site_service.get_site(tenant_id=tenant_id, site_id=site_id)

    material_value, record_count = (
        db.session.query(
            func.coalesce(func.sum(InternalUseRecord.total_value_cents), 0),
            func.count(InternalUseRecord.id),
        )
        .filter(InternalUseRecord.tenant_id == tenant_id, InternalUseRecord.site_id == site.id)
        .one()
    )

    remaining = site.budget_cents - site.expenditure_cents
    utilization = round(site.expenditure_cents * 100.0 / site.budget_cents, 2) if site.budget_cents else None
    return {
        "site": site.to_dict(),
        "material_usage_cents": int(material_value),
        "material_records": int(record_count),
        "remaining_budget_cents": remaining,
        "over_budget": remaining < 0,
        "utilization_pct": utilization,
    }
