# Overview: Pure stock-status rules; no database access.

"""
Stock status derivation.

WHY PURE:
The same rules run inside the ledger coordinator (on every quantity change),
in InventoryItem.refresh_derived() and in the consistency audit. Keeping them
free of session/model imports means each caller can apply them to any
(quantity, threshold) pair, including hypothetical ones in tests.

DESIGN:
- stock level (in/low/out) is always computed
- on-order / discontinued are overrides a user sets; they are never produced
  here and never cleared here
"""

from __future__ import annotations

from typing import Optional


STATUS_IN_STOCK = "in-stock"
STATUS_LOW_STOCK = "low-stock"
STATUS_OUT_OF_STOCK = "out-of-stock"
STATUS_ON_ORDER = "on-order"
STATUS_DISCONTINUED = "discontinued"

STOCK_LEVELS = (STATUS_IN_STOCK, STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK)
STATUS_OVERRIDES = (STATUS_ON_ORDER, STATUS_DISCONTINUED)
ALL_STATUSES = STOCK_LEVELS + STATUS_OVERRIDES

ALERT_LOW_STOCK = "low_stock"
ALERT_OUT_OF_STOCK = "out_of_stock"

_ALERT_FOR_STATUS = {
    STATUS_LOW_STOCK: ALERT_LOW_STOCK,
    STATUS_OUT_OF_STOCK: ALERT_OUT_OF_STOCK,
}

# Higher is worse; sticky statuses never reach the alert check
_SEVERITY = {
    STATUS_IN_STOCK: 0,
    STATUS_LOW_STOCK: 1,
    STATUS_OUT_OF_STOCK: 2,
}


def derive_stock_level(quantity: int, min_stock_level: int) -> str:
    if quantity <= 0:
        return STATUS_OUT_OF_STOCK
    if quantity <= min_stock_level:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


def derive_status(current_status: Optional[str], quantity: int, min_stock_level: int) -> str:
    """
    Next display status for an item after its quantity changed.

    Sticky statuses (on-order, discontinued) come back unchanged whatever the
    quantity; everything else follows the stock level.
    """
    if current_status in STATUS_OVERRIDES:
        return current_status
    return derive_stock_level(quantity, min_stock_level)


def alert_kind_for_transition(old_status: Optional[str], new_status: Optional[str]) -> Optional[str]:
    """
    Alert to raise for a status change, or None.

    Only a move INTO low-stock or out-of-stock alerts, and the alert always
    matches the final status: in-stock -> out-of-stock in one step yields a
    single out_of_stock alert. Recoveries and no-ops yield None.
    """
    if new_status == old_status or new_status not in _ALERT_FOR_STATUS:
        return None
    if _SEVERITY.get(new_status, 0) <= _SEVERITY.get(old_status, 0):
        return None
    return _ALERT_FOR_STATUS[new_status]
