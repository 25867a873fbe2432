from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class LedgerEntry(db.Model):
    """
    Append-only record of one quantity-changing event against an item.

    WHY SNAPSHOT FIELDS:
    item_name / item_sku / unit / unit_value_cents are copied from the item
    BEFORE the mutation. Reports read them from here, not from the item, so
    history still renders correctly after the item is renamed or repriced.

    SOURCE LINK:
    source_type/source_id point at the originating document (sale,
    internal_use, stock_adjustment, purchase_order). It is deliberately not a
    foreign key: deleting a sale or an internal-use record appends a reversal
    entry here, and both entries must survive the document's deletion.

    INVARIANT: for every item, SUM(quantity_delta) == inventory_items.quantity.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.CheckConstraint("quantity_delta <> 0", name="ck_ledger_entries_delta_non_zero"),
        db.Index("ix_ledger_entries_tenant_item_occurred", "tenant_id", "item_id", "occurred_at"),
        db.Index("ix_ledger_entries_tenant_type", "tenant_id", "entry_type"),
        db.Index("ix_ledger_entries_source", "source_type", "source_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    # SALE, RETURN, INTERNAL_USE, ADJUSTMENT, PO_RECEIPT, OPENING_BALANCE, *_REVERSAL
    entry_type = db.Column(db.String(32), nullable=False)

    # Signed: receipts/returns/reversals > 0, sales/internal use/adjustments < 0
    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    # Immutable snapshot
    item_name = db.Column(db.String(255), nullable=False)
    item_sku = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    unit_value_cents = db.Column(db.Integer, nullable=False, default=0)
    total_value_impact_cents = db.Column(db.Integer, nullable=False, default=0)

    # Adjustment type or free-text internal-use reason
    reason = db.Column(db.String(255), nullable=True)

    source_type = db.Column(db.String(32), nullable=True)
    source_id = db.Column(db.Integer, nullable=True)

    actor_user_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", backref=db.backref("ledger_entries", lazy="dynamic"))

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry id={self.id} type={self.entry_type} item_id={self.item_id} "
            f"delta={self.quantity_delta}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "item_id": self.item_id,
            "entry_type": self.entry_type,
            "quantity_delta": self.quantity_delta,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "item_name": self.item_name,
            "item_sku": self.item_sku,
            "unit": self.unit,
            "unit_value_cents": self.unit_value_cents,
            "total_value_impact_cents": self.total_value_impact_cents,
            "reason": self.reason,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
