from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Tenant(db.Model):
    """
    Owning account for every ledger row.

    MULTI-TENANT: every other table carries tenant_id and every service lookup
    filters on it. There is no cross-tenant read path.
    """
    __tablename__ = "tenants"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_tenants_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class TenantSequence(db.Model):
    """
    Per-tenant counter backing receipt and purchase-order numbers.

    next_value is the number the NEXT allocation will return. Allocation is a
    single UPDATE ... SET next_value = next_value + 1 inside the caller's
    transaction, so a rolled-back sale gives its number back.
    """
    __tablename__ = "tenant_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sequence_name", name="uq_tenant_sequences_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    sequence_name = db.Column(db.String(32), nullable=False)
    next_value = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<TenantSequence tenant_id={self.tenant_id} name={self.sequence_name!r} next={self.next_value}>"
