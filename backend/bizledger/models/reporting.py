from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class DailyStockSnapshot(db.Model):
    """Opening/closing quantity of one item for one calendar day (UTC)."""
    __tablename__ = "daily_stock_snapshots"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "item_id", "snapshot_date", name="uq_daily_stock_snapshots_item_day"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    snapshot_date = db.Column(db.Date, nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    item_sku = db.Column(db.String(64), nullable=False)

    opening_quantity = db.Column(db.Integer, nullable=False, default=0)
    closing_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "item_id": self.item_id,
            "snapshot_date": to_iso_date(self.snapshot_date),
            "item_name": self.item_name,
            "item_sku": self.item_sku,
            "opening_quantity": self.opening_quantity,
            "closing_quantity": self.closing_quantity,
            "net_change": self.closing_quantity - self.opening_quantity,
            "created_at": to_utc_z(self.created_at),
        }
