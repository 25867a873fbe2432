"""
Purchase Order Service: ordering and receiving stock from suppliers

WHY: Purchase orders are the only inbound stock path besides returns. The
order itself is paperwork until it is COMPLETED, at which point every line is
received into inventory in one ledger transaction.

LIFECYCLE:
    PENDING -> ORDERED -> SHIPPED -> COMPLETED
        \\---------\\---------\\-----> CANCELLED

- Moves go forward only; skipping a step (ORDERED -> COMPLETED, goods arrived
  without a shipping notice) is allowed.
- COMPLETED and CANCELLED are terminal.
- Receiving never raises stock alerts; an item still below its minimum after
  receipt stays low-stock silently. Sticky statuses (on-order, discontinued)
  are left for a user to clear.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..errors import InvalidState, NotFound, ValidationFailed
from ..extensions import db
from ..models import InventoryItem, PurchaseOrder, PurchaseOrderLine
from ..time_utils import utcnow
from ..validation import parse_positive_int
from .ledger_service import ENTRY_PO_RECEIPT, SOURCE_PURCHASE_ORDER, ledger_transaction
from .pagination import paginate
from .sequence_service import SEQUENCE_PURCHASE_ORDER


logger = logging.getLogger(__name__)


# =============================================================================
# PO STATUS CONSTANTS
# =============================================================================

PO_STATUS_PENDING = "PENDING"
PO_STATUS_ORDERED = "ORDERED"
PO_STATUS_SHIPPED = "SHIPPED"
PO_STATUS_COMPLETED = "COMPLETED"
PO_STATUS_CANCELLED = "CANCELLED"

# Forward order of the happy path; index is used to reject backward moves
PO_FLOW = (PO_STATUS_PENDING, PO_STATUS_ORDERED, PO_STATUS_SHIPPED, PO_STATUS_COMPLETED)
PO_STATUSES = PO_FLOW + (PO_STATUS_CANCELLED,)
PO_TERMINAL_STATUSES = (PO_STATUS_COMPLETED, PO_STATUS_CANCELLED)


def can_transition(current: str, target: str) -> bool:
    if current in PO_TERMINAL_STATUSES or current == target:
        return False
    if target == PO_STATUS_CANCELLED:
        return True
    if target not in PO_FLOW or current not in PO_FLOW:
        return False
    return PO_FLOW.index(target) > PO_FLOW.index(current)


def create_purchase_order(
    *,
    tenant_id: int,
    supplier_name: str,
    items: list,
    expected_date: Optional[datetime] = None,
    notes: Optional[str] = None,
    actor_user_id: Optional[int] = None,
) -> PurchaseOrder:
    supplier_name = (supplier_name or "").strip()
    if not supplier_name:
        raise ValidationFailed("supplier_name is required")
    if not items:
        raise ValidationFailed("Purchase order must contain at least one item")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        po = PurchaseOrder(
            tenant_id=tenant_id,
            order_number=tx.next_document_number(SEQUENCE_PURCHASE_ORDER),
            supplier_name=supplier_name,
            status=PO_STATUS_PENDING,
            order_date=utcnow(),
            expected_date=expected_date,
            notes=notes,
            created_by_user_id=actor_user_id,
        )
        tx.session.add(po)

        total = 0
        for raw in items:
            if not isinstance(raw, dict) or raw.get("item_id") is None:
                raise ValidationFailed("Each purchase order item needs item_id, quantity and unit_cost_cents")
            item = tx.get(InventoryItem, raw["item_id"], label="Inventory item")
            qty = parse_positive_int(raw.get("quantity"), "quantity")
            unit_cost = raw.get("unit_cost_cents")
            if unit_cost is None:
                unit_cost = item.cost_price_cents or 0
            if isinstance(unit_cost, bool) or not isinstance(unit_cost, int) or unit_cost < 0:
                raise ValidationFailed("unit_cost_cents must be a non-negative integer", {"item_id": item.id})

            line = PurchaseOrderLine(
                item_id=item.id,
                item_name=item.name,
                item_sku=item.sku,
                quantity=qty,
                unit_cost_cents=unit_cost,
                line_total_cents=qty * unit_cost,
            )
            po.lines.append(line)
            total += line.line_total_cents

        po.total_amount_cents = total

    logger.info("Purchase order %s created for tenant %s (total %s)", po.order_number, tenant_id, po.total_amount_cents)
    return po


def update_purchase_order_status(
    *,
    tenant_id: int,
    purchase_order_id: int,
    status: str,
    actor_user_id: Optional[int] = None,
) -> PurchaseOrder:
    """
    Move a PO along its lifecycle.

    COMPLETED receives every line into stock (PO_RECEIPT ledger entries, no
    alerts) and stamps received_date, all in the same transaction as the
    status change.
    """
    status = (status or "").strip().upper()
    if status not in PO_STATUSES:
        raise ValidationFailed(f"status must be one of: {', '.join(PO_STATUSES)}")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        po = tx.get(PurchaseOrder, purchase_order_id, lock=True, label="Purchase order")
        if not can_transition(po.status, status):
            raise InvalidState(
                f"Cannot move purchase order from {po.status} to {status}",
                {"current_status": po.status, "requested_status": status},
            )

        if status == PO_STATUS_COMPLETED:
            locked = tx.load_items([line.item_id for line in po.lines])
            for line in po.lines:
                tx.move_stock(
                    locked[line.item_id],
                    quantity_delta=line.quantity,
                    entry_type=ENTRY_PO_RECEIPT,
                    unit_value_cents=line.unit_cost_cents,
                    source_type=SOURCE_PURCHASE_ORDER,
                    source_id=po.id,
                    reason=f"Received {po.order_number}",
                    emit_alerts=False,
                )
            po.received_date = utcnow()
        elif status == PO_STATUS_CANCELLED:
            po.cancelled_at = utcnow()

        previous = po.status
        po.status = status

    logger.info("Purchase order %s: %s -> %s", po.order_number, previous, status)
    return po


def get_purchase_order(*, tenant_id: int, purchase_order_id: int) -> PurchaseOrder:
    po = (
        db.session.query(PurchaseOrder)
        .filter(PurchaseOrder.id == purchase_order_id, PurchaseOrder.tenant_id == tenant_id)
        .first()
    )
    if not po:
        raise NotFound("Purchase order not found", {"id": purchase_order_id})
    return po


def list_purchase_orders(
    *,
    tenant_id: int,
    status: Optional[str] = None,
    supplier: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.tenant_id == tenant_id)
    if status:
        query = query.filter(PurchaseOrder.status == status.upper())
    if supplier:
        query = query.filter(PurchaseOrder.supplier_name.ilike(f"%{supplier.strip()}%"))
    return paginate(query.order_by(PurchaseOrder.id.desc()), page=page, limit=limit)
