# Overview: Transaction coordinator for every stock-moving operation; owns the unit of work.

"""
Ledger transaction coordinator.

WHY:
Sales, returns, internal use, adjustments and purchase-order receipts all do
the same thing: change an item's quantity, recompute its status, maybe raise
an alert, append an immutable ledger row and maybe move a customer balance or
site budget. Any partial application (stock moved but no ledger row, ledger
row but no balance change) leaves reports inconsistent, so all of it happens
in one database transaction owned here.

DESIGN:
- ledger_transaction() opens the unit of work and yields a LedgerTransaction.
  The scope object is passed explicitly to every step; nothing reads ambient
  "current transaction" state.
- LedgerTransaction.move_stock() is the only code path that writes
  InventoryItem.quantity.
- Commit happens once, on clean exit of the with-block. ANY exception rolls
  back every write of the invocation and propagates:
    IntegrityError on a UNIQUE key  -> DuplicateKey
    any other IntegrityError       -> IntegrityViolation
    lock/busy OperationalError     -> TransactionConflict
    StaleDataError                 -> TransactionConflict
    LedgerError                    -> unchanged
- No retries here. Callers (HTTP layer, CLI) decide whether to retry.

CONCURRENCY:
- SQLite: begin_write() issues BEGIN IMMEDIATE before the first read.
- Other backends: items are loaded with SELECT ... FOR UPDATE.
- Both: version_id_col on InventoryItem catches anything that slips through.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import (
    DuplicateKey,
    InsufficientStock,
    IntegrityViolation,
    InvalidQuantity,
    LedgerError,
    NotFound,
    TransactionConflict,
)
from ..extensions import db
from ..models import InventoryItem, LedgerEntry
from ..time_utils import utcnow
from . import alert_service, sequence_service
from .concurrency import begin_write, is_lock_conflict, is_unique_violation, lock_for_update
from .status_service import alert_kind_for_transition


logger = logging.getLogger(__name__)


# Ledger entry types
ENTRY_OPENING_BALANCE = "OPENING_BALANCE"
ENTRY_SALE = "SALE"
ENTRY_SALE_REVERSAL = "SALE_REVERSAL"
ENTRY_RETURN = "RETURN"
ENTRY_INTERNAL_USE = "INTERNAL_USE"
ENTRY_INTERNAL_USE_REVERSAL = "INTERNAL_USE_REVERSAL"
ENTRY_ADJUSTMENT = "ADJUSTMENT"
ENTRY_ADJUSTMENT_REVERSAL = "ADJUSTMENT_REVERSAL"
ENTRY_PO_RECEIPT = "PO_RECEIPT"
ENTRY_PACKAGING_ISSUE = "PACKAGING_ISSUE"
ENTRY_PACKAGING_RETURN = "PACKAGING_RETURN"

ENTRY_TYPES = (
    ENTRY_OPENING_BALANCE,
    ENTRY_SALE,
    ENTRY_SALE_REVERSAL,
    ENTRY_RETURN,
    ENTRY_INTERNAL_USE,
    ENTRY_INTERNAL_USE_REVERSAL,
    ENTRY_ADJUSTMENT,
    ENTRY_ADJUSTMENT_REVERSAL,
    ENTRY_PO_RECEIPT,
    ENTRY_PACKAGING_ISSUE,
    ENTRY_PACKAGING_RETURN,
)

# Ledger source document types
SOURCE_ITEM = "inventory_item"
SOURCE_SALE = "sale"
SOURCE_INTERNAL_USE = "internal_use"
SOURCE_STOCK_ADJUSTMENT = "stock_adjustment"
SOURCE_PURCHASE_ORDER = "purchase_order"


class LedgerTransaction:
    """
    Scope of one ledger unit of work.

    Holds the session, the tenant every lookup is filtered by, the acting
    user, and what the invocation has produced so far (ledger entries and
    alerts), which services use for logging and tests use for assertions.
    """

    def __init__(self, session, *, tenant_id: int, actor_user_id: Optional[int] = None):
        self.session = session
        self.tenant_id = tenant_id
        self.actor_user_id = actor_user_id
        self.entries: list[LedgerEntry] = []
        self.alerts: list = []

    # -------------------------------------------------------------------------
    # Tenant-scoped loads
    # -------------------------------------------------------------------------

    def get(self, model, obj_id: int, *, lock: bool = False, label: Optional[str] = None):
        """
        Load one row of `model` by id, filtered by this tenant.

        A row owned by another tenant is indistinguishable from a missing one.
        """
        label = label or model.__name__
        if obj_id is None:
            raise NotFound(f"{label} not found", {"id": None})
        query = self.session.query(model).filter(model.id == obj_id, model.tenant_id == self.tenant_id)
        if lock:
            query = lock_for_update(query)
        obj = query.first()
        if obj is None:
            raise NotFound(f"{label} not found", {"id": obj_id})
        return obj

    def load_item(self, item_id: int) -> InventoryItem:
        return self.get(InventoryItem, item_id, lock=True, label="Inventory item")

    def load_items(self, item_ids) -> dict[int, InventoryItem]:
        """
        Lock several items in ascending id order.

        Every multi-item operation takes its item locks through here (and only
        then locks the customer), so two transactions never wait on each
        other in opposite orders.
        """
        return {item_id: self.load_item(item_id) for item_id in sorted(set(item_ids))}

    def next_document_number(self, document_type: str) -> str:
        return sequence_service.next_document_number(
            self.session, tenant_id=self.tenant_id, document_type=document_type
        )

    # -------------------------------------------------------------------------
    # The stock move
    # -------------------------------------------------------------------------

    def move_stock(
        self,
        item: InventoryItem,
        *,
        quantity_delta: int,
        entry_type: str,
        unit_value_cents: int,
        source_type: Optional[str] = None,
        source_id: Optional[int] = None,
        reason: Optional[str] = None,
        emit_alerts: bool = True,
        alert_context: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> LedgerEntry:
        """
        Apply a signed quantity change to a locked item and record it.

        Order of work:
        1. validate the delta (non-zero; decrease must not exceed stock)
        2. snapshot name/sku/unit and quantity BEFORE mutating
        3. apply delta, recompute total value and stock level
        4. on a decrease that moves the display status into low/out of stock,
           write exactly one alert
        5. flush the item, then append the ledger entry

        Increases never alert, even when they land in low-stock.
        """
        if item.tenant_id != self.tenant_id:
            raise NotFound("Inventory item not found", {"id": item.id})
        if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int) or quantity_delta == 0:
            raise InvalidQuantity("quantity must be a non-zero integer", {"item_id": item.id})
        if entry_type not in ENTRY_TYPES:
            raise LedgerError(f"Unknown ledger entry type: {entry_type}")

        quantity_before = item.quantity or 0
        if quantity_delta < 0 and quantity_before < -quantity_delta:
            raise InsufficientStock(
                quantity_before,
                -quantity_delta,
                {"item_id": item.id, "sku": item.sku},
            )

        snapshot = item.snapshot()
        old_status = item.status

        item.quantity = quantity_before + quantity_delta
        item.refresh_derived()
        if entry_type == ENTRY_PO_RECEIPT:
            item.last_restocked_at = utcnow()

        new_status = item.status
        if emit_alerts and quantity_delta < 0:
            kind = alert_kind_for_transition(old_status, new_status)
            if kind:
                notification = alert_service.emit_stock_alert(
                    self.session,
                    tenant_id=self.tenant_id,
                    kind=kind,
                    item=item,
                    quantity=item.quantity,
                    context=alert_context,
                )
                self.alerts.append(notification)

        self.session.flush()

        entry = LedgerEntry(
            tenant_id=self.tenant_id,
            item_id=item.id,
            entry_type=entry_type,
            quantity_delta=quantity_delta,
            quantity_before=quantity_before,
            quantity_after=item.quantity,
            unit_value_cents=unit_value_cents or 0,
            total_value_impact_cents=abs(quantity_delta) * (unit_value_cents or 0),
            reason=reason,
            source_type=source_type,
            source_id=source_id,
            actor_user_id=self.actor_user_id,
            occurred_at=occurred_at or utcnow(),
            **snapshot,
        )
        self.session.add(entry)
        self.session.flush()
        self.entries.append(entry)
        return entry


@contextmanager
def ledger_transaction(*, tenant_id: int, actor_user_id: Optional[int] = None) -> Iterator[LedgerTransaction]:
    """
    Run the with-block as one atomic ledger operation.

        with ledger_transaction(tenant_id=t) as tx:
            item = tx.load_item(item_id)
            tx.move_stock(item, quantity_delta=-3, entry_type=ENTRY_SALE, ...)

    Commits on clean exit; rolls back everything on any exception.
    """
    session = db.session
    try:
        begin_write(session)
        tx = LedgerTransaction(session, tenant_id=tenant_id, actor_user_id=actor_user_id)
        yield tx
        session.commit()
    except LedgerError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        detail = {"constraint": str(getattr(exc, "orig", exc))}
        if is_unique_violation(exc):
            raise DuplicateKey("Unique constraint violated; retry the operation", detail) from exc
        logger.error("Ledger transaction for tenant %s violated a constraint: %s", tenant_id, detail["constraint"])
        raise IntegrityViolation("Write rejected by a database constraint", detail) from exc
    except OperationalError as exc:
        session.rollback()
        if not is_lock_conflict(exc):
            raise
        logger.warning("Ledger transaction conflict for tenant %s: %s", tenant_id, exc)
        raise TransactionConflict(
            "Concurrent update detected; retry the operation",
            {"reason": exc.__class__.__name__},
        ) from exc
    except StaleDataError as exc:
        session.rollback()
        logger.warning("Ledger transaction conflict for tenant %s: %s", tenant_id, exc)
        raise TransactionConflict(
            "Concurrent update detected; retry the operation",
            {"reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        session.rollback()
        raise
