from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class InternalUseRecord(db.Model):
    """
    Stock consumed by the business itself (not sold).

    Valued at cost. Optionally charged to a construction site, whose
    expenditure rises by total_value_cents. Deleting the record restocks the
    item and credits the site back.
    """
    __tablename__ = "internal_use_records"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_internal_use_quantity_positive"),
        db.Index("ix_internal_use_tenant_used_at", "tenant_id", "used_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    site_id = db.Column(db.Integer, db.ForeignKey("construction_sites.id"), nullable=True, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    item_sku = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_value_cents = db.Column(db.Integer, nullable=False, default=0)

    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    recorded_by_user_id = db.Column(db.Integer, nullable=True)
    used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    site = db.relationship("ConstructionSite")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "item_id": self.item_id,
            "site_id": self.site_id,
            "item_name": self.item_name,
            "item_sku": self.item_sku,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "total_value_cents": self.total_value_cents,
            "reason": self.reason,
            "notes": self.notes,
            "recorded_by_user_id": self.recorded_by_user_id,
            "used_at": to_utc_z(self.used_at),
            "created_at": to_utc_z(self.created_at),
        }


class StockAdjustment(db.Model):
    """
    Write-off of damaged/expired/lost stock, valued at cost.

    Always decreases stock. Deleting an adjustment restocks the item.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_adjustments_quantity_positive"),
        db.Index("ix_stock_adjustments_tenant_type", "tenant_id", "adjustment_type"),
        db.Index("ix_stock_adjustments_tenant_adjusted_at", "tenant_id", "adjusted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    item_sku = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    adjustment_type = db.Column(db.String(16), nullable=False)  # damaged, expired, lost, shrinkage, other
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cost_impact_cents = db.Column(db.Integer, nullable=False, default=0)

    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    recorded_by_user_id = db.Column(db.Integer, nullable=True)
    adjusted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "item_sku": self.item_sku,
            "unit": self.unit,
            "adjustment_type": self.adjustment_type,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cost_impact_cents": self.total_cost_impact_cents,
            "reason": self.reason,
            "notes": self.notes,
            "recorded_by_user_id": self.recorded_by_user_id,
            "adjusted_at": to_utc_z(self.adjusted_at),
            "created_at": to_utc_z(self.created_at),
        }
