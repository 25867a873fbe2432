from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale document (aggregate of SaleLines).

    MONEY: all amounts in cents. total_amount_cents is computed server-side as
    subtotal + packaging deposits + tax - discount at creation; after that
    only returns (of goods or of containers) lower it.

    LIFECYCLE:
    - Created once, stock decremented for every line in the same transaction
    - record_payment raises amount_paid_cents
    - process_return lowers total/paid and moves status to PARTIALLY_RETURNED
      or RETURNED
    - return_packaging lowers total/paid by the refunded container deposits
    - delete_sale reverses everything still outstanding and removes the
      document (ledger history stays)
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "receipt_number", name="uq_sales_tenant_receipt"),
        db.Index("ix_sales_tenant_sale_date", "tenant_id", "sale_date"),
        db.Index("ix_sales_tenant_payment_status", "tenant_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    # e.g. "S-00042"
    receipt_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    # Container deposits charged at sale time; part of total_amount_cents
    packaging_deposit_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID")  # PAID, PARTIAL, UNPAID
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    status = db.Column(db.String(24), nullable=False, default="COMPLETED")  # COMPLETED, PARTIALLY_RETURNED, RETURNED

    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
    )
    customer = db.relationship("Customer", backref=db.backref("sales", lazy="dynamic"))

    @property
    def outstanding_cents(self) -> int:
        return max(0, (self.total_amount_cents or 0) - (self.amount_paid_cents or 0))

    @property
    def packaging_refunded_cents(self) -> int:
        return sum((line.packaging_quantity_returned or 0) * (line.packaging_deposit_charged_cents or 0) for line in self.lines)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} receipt={self.receipt_number!r} total={self.total_amount_cents}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "receipt_number": self.receipt_number,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "packaging_deposit_cents": self.packaging_deposit_cents,
            "packaging_refunded_cents": self.packaging_refunded_cents,
            "total_amount_cents": self.total_amount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "outstanding_cents": self.outstanding_cents,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "sale_date": to_utc_z(self.sale_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    One item on a sale, with price/cost snapshots.

    returned_quantity accumulates across partial returns; a return is valid
    only up to quantity - returned_quantity.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "item_id", name="uq_sale_lines_sale_item"),
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        db.CheckConstraint(
            "returned_quantity >= 0 AND returned_quantity <= quantity",
            name="ck_sale_lines_returned_within_sold",
        ),
        db.CheckConstraint(
            "packaging_quantity_returned >= 0 AND packaging_quantity_returned <= quantity",
            name="ck_sale_lines_packaging_returned_within_issued",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    item_sku = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    returned_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Reusable container issued with each unit (snapshot of the product link at
    # sale time); deposit is per unit. packaging_quantity_returned counts
    # containers back, whether with a product return or on their own.
    reusable_packaging_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True)
    packaging_deposit_charged_cents = db.Column(db.Integer, nullable=False, default=0)
    packaging_quantity_returned = db.Column(db.Integer, nullable=False, default=0)

    @property
    def returnable_quantity(self) -> int:
        return self.quantity - (self.returned_quantity or 0)

    @property
    def packaging_outstanding(self) -> int:
        """Containers issued with this line that have not come back yet."""
        if self.reusable_packaging_item_id is None:
            return 0
        return self.quantity - (self.packaging_quantity_returned or 0)

    @property
    def packaging_deposit_total_cents(self) -> int:
        if self.reusable_packaging_item_id is None:
            return 0
        return self.quantity * (self.packaging_deposit_charged_cents or 0)

    def __repr__(self) -> str:
        return f"<SaleLine id={self.id} sale_id={self.sale_id} item_id={self.item_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "item_sku": self.item_sku,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "line_total_cents": self.line_total_cents,
            "returned_quantity": self.returned_quantity,
            "reusable_packaging_item_id": self.reusable_packaging_item_id,
            "packaging_deposit_charged_cents": self.packaging_deposit_charged_cents,
            "packaging_quantity_returned": self.packaging_quantity_returned,
        }
