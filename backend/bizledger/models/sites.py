from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ConstructionSite(db.Model):
    """
    Construction project that consumes stock.

    expenditure_cents moves in lock-step with internal-use records charged to
    the site and is clamped at zero when those records are deleted.
    """
    __tablename__ = "construction_sites"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "project_code", name="uq_construction_sites_tenant_code"),
        db.CheckConstraint("expenditure_cents >= 0", name="ck_construction_sites_expenditure_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    project_code = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")  # PLANNING, ACTIVE, ON_HOLD, COMPLETED

    budget_cents = db.Column(db.Integer, nullable=False, default=0)
    expenditure_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ConstructionSite id={self.id} code={self.project_code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "project_code": self.project_code,
            "status": self.status,
            "budget_cents": self.budget_cents,
            "expenditure_cents": self.expenditure_cents,
            "created_at": to_utc_z(self.created_at),
        }
