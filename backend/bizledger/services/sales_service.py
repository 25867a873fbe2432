"""
Sales Service: sale creation, payments, returns and deletion

WHY: A sale is the busiest ledger operation. Every line decrements stock,
every sale may move a customer's receivable, and returns/deletions must undo
exactly what was done, never more. All five operations run as one
ledger_transaction each so stock, ledger, alerts, sale document and customer
balance commit (or roll back) together.

DESIGN PRINCIPLES:
- Prices and costs are snapshotted onto SaleLine at sale time
- Totals are computed here: subtotal + packaging deposits + tax - discount
- returned_quantity accumulates per line; a return may only take back
  quantity - returned_quantity, across any number of partial returns
- delete_sale restocks only what has not already been returned
- Receipt numbers come from the tenant counter inside the same transaction

REUSABLE PACKAGING:
- A product may link a container item (is_reusable_packaging) and a per-unit
  deposit. Selling N units issues N containers from the container's stock and
  charges N x deposit on top of the line total.
- Containers come back with a product return (up to what is still out) or on
  their own through return_packaging; either way the deposit is refunded.

LOCK ORDER (every operation):
sale -> inventory items in ascending id -> customer

LIFECYCLE:
COMPLETED -> PARTIALLY_RETURNED -> RETURNED (by process_return), any -> deleted
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..errors import InvalidQuantity, NotFound, ValidationFailed
from ..extensions import db
from ..models import Customer, InventoryItem, Sale, SaleLine
from ..time_utils import utcnow
from ..validation import parse_positive_int
from . import customer_service
from .ledger_service import (
    ENTRY_PACKAGING_ISSUE,
    ENTRY_PACKAGING_RETURN,
    ENTRY_RETURN,
    ENTRY_SALE,
    ENTRY_SALE_REVERSAL,
    SOURCE_SALE,
    ledger_transaction,
)
from .pagination import paginate
from .sequence_service import SEQUENCE_SALE


logger = logging.getLogger(__name__)


# =============================================================================
# SALE STATUS CONSTANTS
# =============================================================================

SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_PARTIALLY_RETURNED = "PARTIALLY_RETURNED"
SALE_STATUS_RETURNED = "RETURNED"

PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUSES = (PAYMENT_STATUS_PAID, PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_UNPAID)

PAYMENT_METHODS = ("CASH", "CARD", "MOBILE_MONEY", "BANK_TRANSFER")


def derive_payment_status(total_cents: int, paid_cents: int) -> str:
    if paid_cents >= total_cents:
        return PAYMENT_STATUS_PAID
    if paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def _parse_sale_lines(items: list) -> list[dict]:
    if not items:
        raise ValidationFailed("Sale must contain at least one item")

    parsed = []
    seen: set[int] = set()
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationFailed("Each sale item must be an object")
        item_id = raw.get("item_id")
        if item_id is None:
            raise ValidationFailed("item_id is required for every sale item")
        if item_id in seen:
            raise ValidationFailed(
                "Each item may appear only once per sale; combine the quantities",
                {"item_id": item_id},
            )
        seen.add(item_id)

        unit_price = raw.get("unit_price_cents")
        if unit_price is not None and (isinstance(unit_price, bool) or not isinstance(unit_price, int) or unit_price < 0):
            raise ValidationFailed("unit_price_cents must be a non-negative integer", {"item_id": item_id})

        parsed.append({
            "item_id": item_id,
            "quantity": parse_positive_int(raw.get("quantity"), "quantity"),
            "unit_price_cents": unit_price,
        })
    return parsed


def _packaging_link(tx, item: InventoryItem, locked: dict) -> Optional[InventoryItem]:
    """The container issued with `item`, locked, or None when it has no link."""
    if item.packaging_item_id is None:
        return None
    container = locked.get(item.packaging_item_id)
    if container is None:
        # Link changed between the unlocked lookup and the lock
        container = tx.load_item(item.packaging_item_id)
        locked[container.id] = container
    if not container.is_reusable_packaging:
        raise ValidationFailed(
            "Linked packaging item is not marked as reusable packaging",
            {"item_id": item.id, "packaging_item_id": container.id},
        )
    return container


# =============================================================================
# SALE CREATION
# =============================================================================

def create_sale(
    *,
    tenant_id: int,
    items: list,
    customer_id: Optional[int] = None,
    tax_cents: int = 0,
    discount_cents: int = 0,
    amount_paid_cents: int = 0,
    payment_method: str = "CASH",
    notes: Optional[str] = None,
    sale_date: Optional[datetime] = None,
    actor_user_id: Optional[int] = None,
) -> Sale:
    """
    Record a completed sale.

    Per line: check stock, snapshot price/cost, decrement (may raise one
    alert), and issue the linked container if the product has one. Then
    totals, payment status and, if a customer is linked, the customer's
    spend and receivable. Rejects the whole sale if any line (or its
    container) is short; no partial fulfilment.
    """
    lines_in = _parse_sale_lines(items)
    if tax_cents < 0 or discount_cents < 0 or amount_paid_cents < 0:
        raise ValidationFailed("tax_cents, discount_cents and amount_paid_cents must be >= 0")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationFailed(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    item_ids = [line_in["item_id"] for line_in in lines_in]

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        packaging_ids = [
            row.packaging_item_id
            for row in tx.session.query(InventoryItem.packaging_item_id).filter(
                InventoryItem.tenant_id == tenant_id,
                InventoryItem.id.in_(item_ids),
                InventoryItem.packaging_item_id.isnot(None),
            )
        ]
        locked = tx.load_items(item_ids + packaging_ids)

        customer = None
        if customer_id is not None:
            customer = tx.get(Customer, customer_id, lock=True, label="Customer")

        sale = Sale(
            tenant_id=tenant_id,
            receipt_number=tx.next_document_number(SEQUENCE_SALE),
            customer_id=customer.id if customer else None,
            payment_method=payment_method,
            notes=notes,
            created_by_user_id=actor_user_id,
            sale_date=sale_date or utcnow(),
        )
        tx.session.add(sale)
        tx.session.flush()

        subtotal = 0
        deposits = 0
        for line_in in lines_in:
            item = locked[line_in["item_id"]]
            qty = line_in["quantity"]
            unit_price = line_in["unit_price_cents"]
            if unit_price is None:
                unit_price = item.price_cents or 0
            container = _packaging_link(tx, item, locked)
            deposit = (item.packaging_deposit_cents or 0) if container is not None else 0

            line = SaleLine(
                sale_id=sale.id,
                item_id=item.id,
                quantity=qty,
                unit_price_cents=unit_price,
                cost_price_cents=item.cost_price_cents or 0,
                line_total_cents=unit_price * qty,
                returned_quantity=0,
                reusable_packaging_item_id=container.id if container is not None else None,
                packaging_deposit_charged_cents=deposit,
                packaging_quantity_returned=0,
                **item.snapshot(),
            )
            sale.lines.append(line)

            tx.move_stock(
                item,
                quantity_delta=-qty,
                entry_type=ENTRY_SALE,
                unit_value_cents=unit_price,
                source_type=SOURCE_SALE,
                source_id=sale.id,
                reason=f"Sale {sale.receipt_number}",
            )
            if container is not None:
                tx.move_stock(
                    container,
                    quantity_delta=-qty,
                    entry_type=ENTRY_PACKAGING_ISSUE,
                    unit_value_cents=deposit,
                    source_type=SOURCE_SALE,
                    source_id=sale.id,
                    reason=f"Packaging for {item.sku} on sale {sale.receipt_number}",
                )
            subtotal += line.line_total_cents
            deposits += deposit * qty

        total = subtotal + deposits + tax_cents - discount_cents
        if total < 0:
            raise ValidationFailed(
                "discount_cents cannot exceed subtotal plus deposits and tax",
                {
                    "subtotal_cents": subtotal,
                    "packaging_deposit_cents": deposits,
                    "tax_cents": tax_cents,
                    "discount_cents": discount_cents,
                },
            )
        if amount_paid_cents > total:
            raise ValidationFailed(
                "amount_paid_cents cannot exceed the sale total",
                {"total_amount_cents": total, "amount_paid_cents": amount_paid_cents},
            )

        sale.subtotal_cents = subtotal
        sale.packaging_deposit_cents = deposits
        sale.tax_cents = tax_cents
        sale.discount_cents = discount_cents
        sale.total_amount_cents = total
        sale.amount_paid_cents = amount_paid_cents
        sale.payment_status = derive_payment_status(total, amount_paid_cents)
        sale.status = SALE_STATUS_COMPLETED

        if customer is not None:
            customer_service.apply_sale_charge(
                customer, total_cents=total, paid_cents=amount_paid_cents, sale_at=sale.sale_date
            )

    logger.info(
        "Sale %s created for tenant %s: %s lines, total %s, alerts %s",
        sale.receipt_number, tenant_id, len(lines_in), sale.total_amount_cents, len(tx.alerts),
    )
    return sale


# =============================================================================
# PAYMENTS
# =============================================================================

def record_payment(
    *,
    tenant_id: int,
    sale_id: int,
    amount_cents: int,
    actor_user_id: Optional[int] = None,
) -> Sale:
    """Apply a payment to one sale; may not exceed what is outstanding on it."""
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidQuantity("amount_cents must be greater than zero", {"amount_cents": amount_cents})

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        sale = tx.get(Sale, sale_id, lock=True, label="Sale")
        outstanding = sale.total_amount_cents - sale.amount_paid_cents
        if amount_cents > outstanding:
            raise ValidationFailed(
                "Payment amount exceeds outstanding balance",
                {"outstanding_cents": max(0, outstanding), "amount_cents": amount_cents},
            )

        sale.amount_paid_cents += amount_cents
        sale.payment_status = derive_payment_status(sale.total_amount_cents, sale.amount_paid_cents)

        if sale.customer_id is not None:
            customer = tx.get(Customer, sale.customer_id, lock=True, label="Customer")
            customer_service.apply_payment(customer, amount_cents=amount_cents)

    logger.info("Payment of %s recorded on sale %s", amount_cents, sale.receipt_number)
    return sale


def _refund(sale: Sale, value_cents: int) -> None:
    sale.total_amount_cents = max(0, sale.total_amount_cents - value_cents)
    sale.amount_paid_cents = max(0, sale.amount_paid_cents - value_cents)
    sale.payment_status = derive_payment_status(sale.total_amount_cents, sale.amount_paid_cents)


# =============================================================================
# RETURNS
# =============================================================================

def process_return(
    *,
    tenant_id: int,
    sale_id: int,
    returned_items: list,
    actor_user_id: Optional[int] = None,
) -> Sale:
    """
    Take back some or all of a sale's items.

    Validation is cumulative: each line can only give back what has not been
    returned by earlier calls. Restocking never raises alerts. Containers
    still out for a returned line come back with it, up to the returned
    quantity. The returned value (unit price x quantity) plus the refunded
    deposit comes off the sale total and amount paid and off the customer's
    spend and balance, all clamped at zero.
    """
    if not returned_items:
        raise ValidationFailed("At least one item must be returned")

    requested: dict[int, int] = {}
    for raw in returned_items:
        if not isinstance(raw, dict) or raw.get("item_id") is None:
            raise ValidationFailed("Each returned item needs item_id and quantity")
        item_id = raw["item_id"]
        if item_id in requested:
            raise ValidationFailed("Each item may appear only once per return", {"item_id": item_id})
        requested[item_id] = parse_positive_int(raw.get("quantity"), "quantity")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        sale = tx.get(Sale, sale_id, lock=True, label="Sale")
        lines_by_item = {line.item_id: line for line in sale.lines}

        for item_id, qty in requested.items():
            line = lines_by_item.get(item_id)
            if line is None:
                raise NotFound(
                    "Item not found in original sale",
                    {"sale_id": sale.id, "item_id": item_id},
                )
            if qty > line.returnable_quantity:
                raise InvalidQuantity(
                    "Cannot return more than was sold",
                    {
                        "item_id": item_id,
                        "sold": line.quantity,
                        "already_returned": line.returned_quantity,
                        "requested": qty,
                    },
                )

        containers_back = {
            item_id: min(qty, lines_by_item[item_id].packaging_outstanding)
            for item_id, qty in requested.items()
        }
        locked = tx.load_items(
            list(requested)
            + [lines_by_item[item_id].reusable_packaging_item_id for item_id, n in containers_back.items() if n > 0]
        )

        returned_value = 0
        deposit_refund = 0
        for item_id, qty in requested.items():
            line = lines_by_item[item_id]
            tx.move_stock(
                locked[item_id],
                quantity_delta=qty,
                entry_type=ENTRY_RETURN,
                unit_value_cents=line.unit_price_cents,
                source_type=SOURCE_SALE,
                source_id=sale.id,
                reason=f"Return on {sale.receipt_number}",
                emit_alerts=False,
            )
            line.returned_quantity += qty
            returned_value += line.unit_price_cents * qty

            n_containers = containers_back[item_id]
            if n_containers > 0:
                tx.move_stock(
                    locked[line.reusable_packaging_item_id],
                    quantity_delta=n_containers,
                    entry_type=ENTRY_PACKAGING_RETURN,
                    unit_value_cents=line.packaging_deposit_charged_cents,
                    source_type=SOURCE_SALE,
                    source_id=sale.id,
                    reason=f"Packaging returned with {line.item_sku} on {sale.receipt_number}",
                    emit_alerts=False,
                )
                line.packaging_quantity_returned += n_containers
                deposit_refund += n_containers * line.packaging_deposit_charged_cents

        _refund(sale, returned_value + deposit_refund)
        if all(line.returnable_quantity == 0 for line in sale.lines):
            sale.status = SALE_STATUS_RETURNED
        else:
            sale.status = SALE_STATUS_PARTIALLY_RETURNED

        if sale.customer_id is not None:
            customer = tx.get(Customer, sale.customer_id, lock=True, label="Customer")
            customer_service.apply_return_credit(customer, value_cents=returned_value + deposit_refund)

    logger.info(
        "Return on sale %s: value %s, deposit refund %s, status %s",
        sale.receipt_number, returned_value, deposit_refund, sale.status,
    )
    return sale


def return_packaging(
    *,
    tenant_id: int,
    sale_id: int,
    item_id: int,
    quantity: int,
    actor_user_id: Optional[int] = None,
) -> Sale:
    """
    Take back containers issued with one sale line, without the product.

    Puts the containers back in stock and refunds quantity x deposit from the
    sale and the customer, clamped at zero. The sale's return status is not
    touched; the goods themselves were kept.
    """
    qty = parse_positive_int(quantity, "quantity")

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        sale = tx.get(Sale, sale_id, lock=True, label="Sale")
        line = next((line for line in sale.lines if line.item_id == item_id), None)
        if line is None:
            raise NotFound("Item not found in original sale", {"sale_id": sale.id, "item_id": item_id})
        if line.reusable_packaging_item_id is None or not line.packaging_deposit_charged_cents:
            raise ValidationFailed(
                "This sale line carries no refundable packaging",
                {"sale_id": sale.id, "item_id": item_id},
            )
        if qty > line.packaging_outstanding:
            raise InvalidQuantity(
                "Cannot return more packaging than was issued",
                {
                    "item_id": item_id,
                    "issued": line.quantity,
                    "already_returned": line.packaging_quantity_returned,
                    "requested": qty,
                },
            )

        container = tx.load_item(line.reusable_packaging_item_id)
        tx.move_stock(
            container,
            quantity_delta=qty,
            entry_type=ENTRY_PACKAGING_RETURN,
            unit_value_cents=line.packaging_deposit_charged_cents,
            source_type=SOURCE_SALE,
            source_id=sale.id,
            reason=f"Packaging returned on {sale.receipt_number}",
            emit_alerts=False,
        )
        line.packaging_quantity_returned += qty
        refund = qty * line.packaging_deposit_charged_cents
        _refund(sale, refund)

        if sale.customer_id is not None:
            customer = tx.get(Customer, sale.customer_id, lock=True, label="Customer")
            customer_service.apply_return_credit(customer, value_cents=refund)

    logger.info("Packaging returned on sale %s: %s units, refund %s", sale.receipt_number, qty, refund)
    return sale


# =============================================================================
# DELETION (full reversal)
# =============================================================================

def delete_sale(*, tenant_id: int, sale_id: int, actor_user_id: Optional[int] = None) -> dict:
    """
    Delete a sale and undo all of its remaining effects.

    Restocks each line's unreturned quantity (already-returned units are back
    on the shelf) and every container still out, and reverses the customer
    spend/receivable still carried by the sale. Ledger rows are kept; a
    SALE_REVERSAL entry records each restock.
    """
    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        sale = tx.get(Sale, sale_id, lock=True, label="Sale")
        receipt_number = sale.receipt_number

        lines = list(sale.lines)
        locked = tx.load_items(
            [line.item_id for line in lines if line.returnable_quantity > 0]
            + [line.reusable_packaging_item_id for line in lines if line.packaging_outstanding > 0]
        )

        restocked = []
        packaging_restocked = []
        for line in lines:
            outstanding = line.returnable_quantity
            if outstanding > 0:
                tx.move_stock(
                    locked[line.item_id],
                    quantity_delta=outstanding,
                    entry_type=ENTRY_SALE_REVERSAL,
                    unit_value_cents=line.unit_price_cents,
                    source_type=SOURCE_SALE,
                    source_id=sale.id,
                    reason=f"Deleted sale {receipt_number}",
                    emit_alerts=False,
                )
                restocked.append({"item_id": line.item_id, "quantity": outstanding})

            containers_out = line.packaging_outstanding
            if containers_out > 0:
                tx.move_stock(
                    locked[line.reusable_packaging_item_id],
                    quantity_delta=containers_out,
                    entry_type=ENTRY_SALE_REVERSAL,
                    unit_value_cents=line.packaging_deposit_charged_cents,
                    source_type=SOURCE_SALE,
                    source_id=sale.id,
                    reason=f"Packaging from deleted sale {receipt_number}",
                    emit_alerts=False,
                )
                packaging_restocked.append({"item_id": line.reusable_packaging_item_id, "quantity": containers_out})

        if sale.customer_id is not None:
            customer = tx.get(Customer, sale.customer_id, lock=True, label="Customer")
            customer_service.reverse_sale(
                customer, total_cents=sale.total_amount_cents, paid_cents=sale.amount_paid_cents
            )

        tx.session.delete(sale)

    logger.info("Deleted sale %s for tenant %s", receipt_number, tenant_id)
    return {
        "sale_id": sale_id,
        "receipt_number": receipt_number,
        "restocked": restocked,
        "packaging_restocked": packaging_restocked,
    }


# =============================================================================
# READS
# =============================================================================

def get_sale(*, tenant_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter(Sale.id == sale_id, Sale.tenant_id == tenant_id).first()
    if not sale:
        raise NotFound("Sale not found", {"id": sale_id})
    return sale


def list_sales(
    *,
    tenant_id: int,
    payment_status: Optional[str] = None,
    customer_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    query = db.session.query(Sale).filter(Sale.tenant_id == tenant_id)
    if payment_status:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationFailed(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
        query = query.filter(Sale.payment_status == payment_status)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)
    return paginate(query.order_by(Sale.sale_date.desc(), Sale.id.desc()), page=page, limit=limit)
