# Overview: Service-layer operations for internal stock consumption; encapsulates business logic and database work.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_

from ..errors import NotFound, ValidationFailed
from ..extensions import db
from ..models import ConstructionSite, InternalUseRecord
from ..time_utils import utcnow
from ..validation import parse_positive_int
from . import site_service
from .ledger_service import (
    ENTRY_INTERNAL_USE,
    ENTRY_INTERNAL_USE_REVERSAL,
    SOURCE_INTERNAL_USE,
    ledger_transaction,
)
from .pagination import paginate


logger = logging.getLogger(__name__)


def create_internal_use(
    *,
    tenant_id: int,
    item_id: int,
    quantity: int,
    reason: str,
    site_id: Optional[int] = None,
    notes: Optional[str] = None,
    used_at: Optional[datetime] = None,
    actor_user_id: Optional[int] = None,
) -> InternalUseRecord:
    """
    Book stock used by the business, valued at cost.

    If site_id is given the site's expenditure rises by the record's value in
    the same transaction.
    """
    quantity = parse_positive_int(quantity, "quantity")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("reason is required")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        item = tx.load_item(item_id)
        site = None
        if site_id is not None:
            site = tx.get(ConstructionSite, site_id, lock=True, label="Construction site")

        unit_cost = item.cost_price_cents or 0
        record = InternalUseRecord(
            tenant_id=tenant_id,
            item_id=item.id,
            site_id=site.id if site else None,
            quantity=quantity,
            unit_cost_cents=unit_cost,
            total_value_cents=unit_cost * quantity,
            reason=reason,
            notes=notes,
            recorded_by_user_id=actor_user_id,
            used_at=used_at or utcnow(),
            **item.snapshot(),
        )
        tx.session.add(record)
        tx.session.flush()

        tx.move_stock(
            item,
            quantity_delta=-quantity,
            entry_type=ENTRY_INTERNAL_USE,
            unit_value_cents=unit_cost,
            source_type=SOURCE_INTERNAL_USE,
            source_id=record.id,
            reason=reason,
            alert_context="internal use",
        )

        if site is not None:
            site_service.charge_site(site, amount_cents=record.total_value_cents)

    logger.info("Internal use %s: item %s x%s for tenant %s", record.id, item_id, quantity, tenant_id)
    return record


def delete_internal_use(*, tenant_id: int, record_id: int, actor_user_id: Optional[int] = None) -> dict:
    """Restock the item, credit the site back and remove the record."""
    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        record = tx.get(InternalUseRecord, record_id, lock=True, label="Internal use record")
        item = tx.load_item(record.item_id)

        tx.move_stock(
            item,
            quantity_delta=record.quantity,
            entry_type=ENTRY_INTERNAL_USE_REVERSAL,
            unit_value_cents=record.unit_cost_cents,
            source_type=SOURCE_INTERNAL_USE,
            source_id=record.id,
            reason=f"Deleted internal use: {record.reason}",
            emit_alerts=False,
        )

        if record.site_id is not None:
            site = tx.get(ConstructionSite, record.site_id, lock=True, label="Construction site")
            site_service.credit_site(site, amount_cents=record.total_value_cents)

        restocked = {"item_id": record.item_id, "quantity": record.quantity}
        tx.session.delete(record)

    return {"record_id": record_id, "restocked": restocked}


def _filtered_query(
    *,
    tenant_id: int,
    item_id: Optional[int] = None,
    site_id: Optional[int] = None,
    search: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    query = db.session.query(InternalUseRecord).filter(InternalUseRecord.tenant_id == tenant_id)
    if item_id is not None:
        query = query.filter(InternalUseRecord.item_id == item_id)
    if site_id is not None:
        query = query.filter(InternalUseRecord.site_id == site_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                InternalUseRecord.reason.ilike(pattern),
                InternalUseRecord.notes.ilike(pattern),
                InternalUseRecord.item_name.ilike(pattern),
                InternalUseRecord.item_sku.ilike(pattern),
            )
        )
    if start:
        query = query.filter(InternalUseRecord.used_at >= start)
    if end:
        query = query.filter(InternalUseRecord.used_at < end)
    return query


def get_internal_use(*, tenant_id: int, record_id: int) -> InternalUseRecord:
    record = _filtered_query(tenant_id=tenant_id).filter(InternalUseRecord.id == record_id).first()
    if not record:
        raise NotFound("Internal use record not found", {"id": record_id})
    return record


def list_internal_uses(*, page: Optional[int] = None, limit: Optional[int] = None, **filters) -> dict:
    query = _filtered_query(**filters)
    return paginate(
        query.order_by(InternalUseRecord.used_at.desc(), InternalUseRecord.id.desc()),
        page=page,
        limit=limit,
    )


def internal_use_totals(**filters) -> dict:
    """Total value, quantity and count of internal-use records matching the filters."""
    query = _filtered_query(**filters).with_entities(
        func.coalesce(func.sum(InternalUseRecord.total_value_cents), 0),
        func.coalesce(func.sum(InternalUseRecord.quantity), 0),
        func.count(InternalUseRecord.id),
    )
    total_value, total_quantity, count = query.one()
    return {
        "total_value_cents": int(total_value),
        "total_quantity": int(total_quantity),
        "count": int(count),
    }
