# Overview: Service-layer operations for the item catalog; quantity only moves through the ledger.

from __future__ import annotations

import logging
from typing import Optional

from flask import current_app, has_app_context
from sqlalchemy import or_

from ..errors import DuplicateKey, InvalidState, NotFound, ValidationFailed
from ..extensions import db
from ..models import (
    DailyStockSnapshot,
    InternalUseRecord,
    InventoryItem,
    LedgerEntry,
    Notification,
    PurchaseOrderLine,
    SaleLine,
    StockAdjustment,
)
from .ledger_service import ENTRY_OPENING_BALANCE, SOURCE_ITEM, ledger_transaction
from .pagination import paginate
from .status_service import ALL_STATUSES, STATUS_OVERRIDES


logger = logging.getLogger(__name__)

# Fields a catalog edit may touch; quantity is deliberately absent.
UPDATABLE_FIELDS = {
    "name",
    "description",
    "category",
    "unit",
    "price_cents",
    "cost_price_cents",
    "min_stock_level",
    "max_stock_level",
    "is_reusable_packaging",
    "packaging_item_id",
    "packaging_deposit_cents",
}

# Every column that points at an inventory item; any row here blocks a delete.
ITEM_REFERENCES = (
    (LedgerEntry, LedgerEntry.item_id),
    (SaleLine, SaleLine.item_id),
    (SaleLine, SaleLine.reusable_packaging_item_id),
    (PurchaseOrderLine, PurchaseOrderLine.item_id),
    (InternalUseRecord, InternalUseRecord.item_id),
    (StockAdjustment, StockAdjustment.item_id),
    (DailyStockSnapshot, DailyStockSnapshot.item_id),
    (Notification, Notification.related_item_id),
    (InventoryItem, InventoryItem.packaging_item_id),
)


def normalize_sku(sku: str) -> str:
    return (sku or "").strip().upper()


def _default_min_stock_level() -> int:
    if has_app_context():
        return current_app.config.get("DEFAULT_MIN_STOCK_LEVEL", 10)
    return 10


def _check_thresholds(min_stock_level: int, max_stock_level: Optional[int]) -> None:
    if min_stock_level < 0:
        raise ValidationFailed("min_stock_level must be >= 0")
    if max_stock_level is not None and max_stock_level < min_stock_level:
        raise ValidationFailed(
            "max_stock_level must be >= min_stock_level",
            {"min_stock_level": min_stock_level, "max_stock_level": max_stock_level},
        )


def _check_money(field: str, value: int) -> None:
    if value is None or value < 0:
        raise ValidationFailed(f"{field} must be >= 0")


def _check_packaging_link(tx, item_id: Optional[int], packaging_item_id: Optional[int]) -> None:
    """A product's container must be another reusable-packaging item of the same tenant."""
    if packaging_item_id is None:
        return
    if item_id is not None and packaging_item_id == item_id:
        raise ValidationFailed("An item cannot be its own packaging", {"item_id": item_id})
    container = tx.get(InventoryItem, packaging_item_id, label="Packaging item")
    if not container.is_reusable_packaging:
        raise ValidationFailed(
            "packaging_item_id must point at an item marked is_reusable_packaging",
            {"packaging_item_id": packaging_item_id},
        )


def create_item(
    *,
    tenant_id: int,
    sku: str,
    name: str,
    unit: str = "pcs",
    description: Optional[str] = None,
    category: Optional[str] = None,
    price_cents: int = 0,
    cost_price_cents: int = 0,
    min_stock_level: Optional[int] = None,
    max_stock_level: Optional[int] = None,
    quantity: int = 0,
    status_override: Optional[str] = None,
    is_reusable_packaging: bool = False,
    packaging_item_id: Optional[int] = None,
    packaging_deposit_cents: int = 0,
    actor_user_id: Optional[int] = None,
) -> InventoryItem:
    """
    Create a catalog item.

    An initial quantity is booked as an OPENING_BALANCE ledger entry so that
    the item's ledger always sums to its quantity.
    """
    sku = normalize_sku(sku)
    name = (name or "").strip()
    if not sku or not name:
        raise ValidationFailed("sku and name are required")
    if min_stock_level is None:
        min_stock_level = _default_min_stock_level()
    _check_thresholds(min_stock_level, max_stock_level)
    _check_money("price_cents", price_cents)
    _check_money("cost_price_cents", cost_price_cents)
    _check_money("packaging_deposit_cents", packaging_deposit_cents)
    if quantity is None or quantity < 0:
        raise ValidationFailed("quantity must be >= 0")
    if status_override is not None and status_override not in STATUS_OVERRIDES:
        raise ValidationFailed(f"status_override must be one of: {', '.join(STATUS_OVERRIDES)}")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        exists = (
            tx.session.query(InventoryItem.id)
            .filter(InventoryItem.tenant_id == tenant_id, InventoryItem.sku == sku)
            .first()
        )
        if exists:
            raise DuplicateKey(f"SKU '{sku}' already exists", {"sku": sku})
        _check_packaging_link(tx, None, packaging_item_id)

        item = InventoryItem(
            tenant_id=tenant_id,
            sku=sku,
            name=name,
            unit=(unit or "pcs").strip(),
            description=description,
            category=category,
            price_cents=price_cents,
            cost_price_cents=cost_price_cents,
            min_stock_level=min_stock_level,
            max_stock_level=max_stock_level,
            quantity=0,
            status_override=status_override,
            is_reusable_packaging=bool(is_reusable_packaging),
            packaging_item_id=packaging_item_id,
            packaging_deposit_cents=packaging_deposit_cents,
        )
        item.refresh_derived()
        tx.session.add(item)
        tx.session.flush()

        if quantity:
            tx.move_stock(
                item,
                quantity_delta=quantity,
                entry_type=ENTRY_OPENING_BALANCE,
                unit_value_cents=cost_price_cents,
                source_type=SOURCE_ITEM,
                source_id=item.id,
                reason="Opening balance",
                emit_alerts=False,
            )

    logger.info("Created item %s (%s) for tenant %s with qty %s", item.id, sku, tenant_id, quantity)
    return item


def update_item(*, tenant_id: int, item_id: int, changes: dict, actor_user_id: Optional[int] = None) -> InventoryItem:
    """
    Edit catalog fields and recompute derived values.

    A threshold change can move stock_level (e.g. raising min_stock_level
    makes an item low-stock); that recomputation is silent.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        if "quantity" in unknown:
            raise ValidationFailed("quantity cannot be edited directly; record a stock movement instead")
        raise ValidationFailed(f"Field not allowed: {', '.join(sorted(unknown))}")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        item = tx.load_item(item_id)

        for field in ("price_cents", "cost_price_cents", "packaging_deposit_cents"):
            if field in changes:
                _check_money(field, changes[field])
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationFailed("name cannot be blank")

        min_level = changes.get("min_stock_level", item.min_stock_level)
        max_level = changes.get("max_stock_level", item.max_stock_level)
        _check_thresholds(min_level, max_level)
        if "packaging_item_id" in changes:
            _check_packaging_link(tx, item.id, changes["packaging_item_id"])
        if changes.get("is_reusable_packaging") is False and item.is_reusable_packaging:
            in_use = (
                tx.session.query(InventoryItem.id)
                .filter(InventoryItem.tenant_id == tenant_id, InventoryItem.packaging_item_id == item.id)
                .first()
            )
            if in_use:
                raise InvalidState(
                    "Item is linked as packaging by other products",
                    {"item_id": item.id, "linked_item_id": in_use.id},
                )

        for field, value in changes.items():
            setattr(item, field, value.strip() if isinstance(value, str) else value)
        item.refresh_derived()

    return item


def set_status_override(
    *,
    tenant_id: int,
    item_id: int,
    override: Optional[str],
    actor_user_id: Optional[int] = None,
) -> InventoryItem:
    """Set (on-order / discontinued) or clear (None) the sticky status."""
    if override is not None and override not in STATUS_OVERRIDES:
        raise ValidationFailed(f"override must be one of: {', '.join(STATUS_OVERRIDES)} or null")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        item = tx.load_item(item_id)
        item.status_override = override
        item.refresh_derived()

    logger.info("Item %s status override set to %s", item_id, override)
    return item


def get_item(*, tenant_id: int, item_id: int) -> InventoryItem:
    item = (
        db.session.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.tenant_id == tenant_id)
        .first()
    )
    if not item:
        raise NotFound("Inventory item not found", {"id": item_id})
    return item


def list_items(
    *,
    tenant_id: int,
    status: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    query = db.session.query(InventoryItem).filter(InventoryItem.tenant_id == tenant_id)

    if status:
        if status not in ALL_STATUSES:
            raise ValidationFailed(f"status must be one of: {', '.join(ALL_STATUSES)}")
        query = query.filter(InventoryItem.status == status)
    if category:
        query = query.filter(InventoryItem.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(InventoryItem.name.ilike(pattern), InventoryItem.sku.ilike(pattern)))

    return paginate(query.order_by(InventoryItem.name, InventoryItem.id), page=page, limit=limit)


def delete_item(*, tenant_id: int, item_id: int) -> None:
    """
    Hard-delete an item that has no history.

    Items referenced by ledger entries, documents, snapshots, notifications
    or another item's packaging link keep their row; mark them discontinued
    instead.
    """
    with ledger_transaction(tenant_id=tenant_id) as tx:
        item = tx.load_item(item_id)
        referenced = next(
            (model.__tablename__ for model, column in ITEM_REFERENCES
             if tx.session.query(model.id).filter(column == item.id).first()),
            None,
        )
        if referenced:
            raise InvalidState(
                "Item has ledger history and cannot be deleted; mark it discontinued instead",
                {"item_id": item.id, "referenced_by": referenced},
            )
        tx.session.delete(item)

    logger.info("Deleted item %s for tenant %s", item_id, tenant_id)
