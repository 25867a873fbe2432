# Overview: Service-layer operations for stock write-offs; encapsulates business logic and database work.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_

from ..errors import NotFound, ValidationFailed
from ..extensions import db
from ..models import StockAdjustment
from ..time_utils import utcnow
from ..validation import parse_positive_int
from .ledger_service import (
    ENTRY_ADJUSTMENT,
    ENTRY_ADJUSTMENT_REVERSAL,
    SOURCE_STOCK_ADJUSTMENT,
    ledger_transaction,
)
from .pagination import paginate


logger = logging.getLogger(__name__)

ADJUSTMENT_TYPES = ("damaged", "expired", "lost", "shrinkage", "other")


def create_stock_adjustment(
    *,
    tenant_id: int,
    item_id: int,
    quantity: int,
    adjustment_type: str,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    adjusted_at: Optional[datetime] = None,
    actor_user_id: Optional[int] = None,
) -> StockAdjustment:
    """Write off stock at cost price; alerts mention the adjustment type."""
    quantity = parse_positive_int(quantity, "quantity")
    adjustment_type = (adjustment_type or "").strip().lower()
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationFailed(
            f"adjustment_type must be one of: {', '.join(ADJUSTMENT_TYPES)}",
            {"adjustment_type": adjustment_type},
        )

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        item = tx.load_item(item_id)
        unit_cost = item.cost_price_cents or 0

        adjustment = StockAdjustment(
            tenant_id=tenant_id,
            item_id=item.id,
            adjustment_type=adjustment_type,
            quantity=quantity,
            unit_cost_cents=unit_cost,
            total_cost_impact_cents=unit_cost * quantity,
            reason=reason,
            notes=notes,
            recorded_by_user_id=actor_user_id,
            adjusted_at=adjusted_at or utcnow(),
            **item.snapshot(),
        )
        tx.session.add(adjustment)
        tx.session.flush()

        tx.move_stock(
            item,
            quantity_delta=-quantity,
            entry_type=ENTRY_ADJUSTMENT,
            unit_value_cents=unit_cost,
            source_type=SOURCE_STOCK_ADJUSTMENT,
            source_id=adjustment.id,
            reason=adjustment_type,
            alert_context=f"{adjustment_type} adjustment",
        )

    logger.info(
        "Stock adjustment %s (%s): item %s x%s for tenant %s",
        adjustment.id, adjustment_type, item_id, quantity, tenant_id,
    )
    return adjustment


def delete_stock_adjustment(*, tenant_id: int, adjustment_id: int, actor_user_id: Optional[int] = None) -> dict:
    """Restock the written-off quantity and remove the adjustment."""
    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        adjustment = tx.get(StockAdjustment, adjustment_id, lock=True, label="Stock adjustment")
        item = tx.load_item(adjustment.item_id)

        tx.move_stock(
            item,
            quantity_delta=adjustment.quantity,
            entry_type=ENTRY_ADJUSTMENT_REVERSAL,
            unit_value_cents=adjustment.unit_cost_cents,
            source_type=SOURCE_STOCK_ADJUSTMENT,
            source_id=adjustment.id,
            reason=adjustment.adjustment_type,
            emit_alerts=False,
        )

        restocked = {"item_id": adjustment.item_id, "quantity": adjustment.quantity}
        tx.session.delete(adjustment)

    return {"adjustment_id": adjustment_id, "restocked": restocked}


def _filtered_query(
    *,
    tenant_id: int,
    item_id: Optional[int] = None,
    adjustment_type: Optional[str] = None,
    search: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    query = db.session.query(StockAdjustment).filter(StockAdjustment.tenant_id == tenant_id)
    if item_id is not None:
        query = query.filter(StockAdjustment.item_id == item_id)
    if adjustment_type:
        if adjustment_type not in ADJUSTMENT_TYPES:
            raise ValidationFailed(f"adjustment_type must be one of: {', '.join(ADJUSTMENT_TYPES)}")
        query = query.filter(StockAdjustment.adjustment_type == adjustment_type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                StockAdjustment.reason.ilike(pattern),
                StockAdjustment.notes.ilike(pattern),
                StockAdjustment.item_name.ilike(pattern),
                StockAdjustment.item_sku.ilike(pattern),
            )
        )
    if start:
        query = query.filter(StockAdjustment.adjusted_at >= start)
    if end:
        query = query.filter(StockAdjustment.adjusted_at < end)
    return query


def get_stock_adjustment(*, tenant_id: int, adjustment_id: int) -> StockAdjustment:
    adjustment = _filtered_query(tenant_id=tenant_id).filter(StockAdjustment.id == adjustment_id).first()
    if not adjustment:
        raise NotFound("Stock adjustment not found", {"id": adjustment_id})
    return adjustment


def list_stock_adjustments(*, page: Optional[int] = None, limit: Optional[int] = None, **filters) -> dict:
    query = _filtered_query(**filters)
    return paginate(
        query.order_by(StockAdjustment.adjusted_at.desc(), StockAdjustment.id.desc()),
        page=page,
        limit=limit,
    )


def adjustment_totals(**filters) -> dict:
    query = _filtered_query(**filters).with_entities(
        func.coalesce(func.sum(StockAdjustment.total_cost_impact_cents), 0),
        func.coalesce(func.sum(StockAdjustment.quantity), 0),
        func.count(StockAdjustment.id),
    )
    total_impact, total_quantity, count = query.one()
    return {
        "total_cost_impact_cents": int(total_impact),
        "total_quantity": int(total_quantity),
        "count": int(count),
    }
