from __future__ import annotations

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..services.status_service import derive_stock_level
from ..time_utils import to_utc_z


class InventoryItem(db.Model):
    """
    Mutable stock aggregate for one SKU of one tenant.

    STATUS DESIGN:
    Status is two orthogonal fields:
    - stock_level: always computed from quantity vs min_stock_level
      (in-stock / low-stock / out-of-stock)
    - status_override: explicitly set by a user (on-order / discontinued),
      NULL when stock level should show through
    `status` is the display value: the override when present, else stock_level.

    QUANTITY:
    quantity is only ever changed through LedgerTransaction.move_stock(), which
    appends a LedgerEntry in the same transaction. Sum of the item's ledger
    deltas always equals quantity.

    CONCURRENCY:
    version_id_col gives optimistic locking on top of the row lock taken by the
    coordinator; a lost race surfaces as StaleDataError -> TransactionConflict.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_inventory_items_tenant_sku"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        db.CheckConstraint("packaging_deposit_cents >= 0", name="ck_inventory_items_deposit_non_negative"),
        db.Index("ix_inventory_items_tenant_name", "tenant_id", "name"),
        db.Index("ix_inventory_items_tenant_stock_level", "tenant_id", "stock_level"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    # Stored upper-cased and trimmed
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    unit = db.Column(db.String(32), nullable=False, default="pcs")

    quantity = db.Column(db.Integer, nullable=False, default=0)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    min_stock_level = db.Column(db.Integer, nullable=False, default=10)
    max_stock_level = db.Column(db.Integer, nullable=True)

    stock_level = db.Column(db.String(16), nullable=False, default="out-of-stock")
    status_override = db.Column(db.String(16), nullable=True)

    # quantity * price_cents, recomputed on every mutation
    total_value_cents = db.Column(db.Integer, nullable=False, default=0)

    last_restocked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # REUSABLE PACKAGING:
    # - is_reusable_packaging marks the container itself (an empty gas cylinder)
    # - packaging_item_id links a product to the container it ships in; selling
    #   the product issues one container per unit and charges
    #   packaging_deposit_cents per unit, refunded when the container comes back
    is_reusable_packaging = db.Column(db.Boolean, nullable=False, default=False)
    packaging_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True)
    packaging_deposit_cents = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @hybrid_property
    def status(self) -> str:
        return self.status_override or self.stock_level

    @status.inplace.expression
    @classmethod
    def _status_expression(cls):
        return db.func.coalesce(cls.status_override, cls.stock_level)

    def refresh_derived(self) -> None:
        """Recompute total value and stock level from current quantity/thresholds."""
        self.total_value_cents = (self.quantity or 0) * (self.price_cents or 0)
        self.stock_level = derive_stock_level(self.quantity or 0, self.min_stock_level or 0)

    def snapshot(self) -> dict:
        """Display fields copied into ledger rows and document lines."""
        return {
            "item_name": self.name,
            "item_sku": self.sku,
            "unit": self.unit,
        }

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} qty={self.quantity} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "unit": self.unit,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "min_stock_level": self.min_stock_level,
            "max_stock_level": self.max_stock_level,
            "stock_level": self.stock_level,
            "status_override": self.status_override,
            "status": self.status,
            "total_value_cents": self.total_value_cents,
            "last_restocked_at": to_utc_z(self.last_restocked_at),
            "is_reusable_packaging": self.is_reusable_packaging,
            "packaging_item_id": self.packaging_item_id,
            "packaging_deposit_cents": self.packaging_deposit_cents,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
