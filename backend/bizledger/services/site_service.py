# Overview: Service-layer operations for construction sites and their material spend.

from __future__ import annotations

from typing import Optional

from ..errors import DuplicateKey, NotFound, ValidationFailed
from ..extensions import db
from ..models import ConstructionSite
from .ledger_service import ledger_transaction


SITE_STATUSES = ("PLANNING", "ACTIVE", "ON_HOLD", "COMPLETED")


def charge_site(site: ConstructionSite, *, amount_cents: int) -> None:
    """Add material spend to a site (inside the caller's ledger transaction)."""
    site.expenditure_cents = (site.expenditure_cents or 0) + amount_cents


def credit_site(site: ConstructionSite, *, amount_cents: int) -> None:
    site.expenditure_cents = max(0, (site.expenditure_cents or 0) - amount_cents)


def create_site(
    *,
    tenant_id: int,
    name: str,
    project_code: str,
    budget_cents: int = 0,
    status: str = "ACTIVE",
) -> ConstructionSite:
    name = (name or "").strip()
    project_code = (project_code or "").strip().upper()
    if not name or not project_code:
        raise ValidationFailed("name and project_code are required")
    if budget_cents is None or budget_cents < 0:
        raise ValidationFailed("budget_cents must be >= 0")
    if status not in SITE_STATUSES:
        raise ValidationFailed(f"status must be one of: {', '.join(SITE_STATUSES)}")

    with ledger_transaction(tenant_id=tenant_id) as tx:
        dup = (
            tx.session.query(ConstructionSite.id)
            .filter(ConstructionSite.tenant_id == tenant_id, ConstructionSite.project_code == project_code)
            .first()
        )
        if dup:
            raise DuplicateKey(f"Project code '{project_code}' already exists", {"project_code": project_code})
        site = ConstructionSite(
            tenant_id=tenant_id,
            name=name,
            project_code=project_code,
            budget_cents=budget_cents,
            status=status,
        )
        tx.session.add(site)

    return site


def get_site(*, tenant_id: int, site_id: int) -> ConstructionSite:
    site = (
        db.session.query(ConstructionSite)
        .filter(ConstructionSite.id == site_id, ConstructionSite.tenant_id == tenant_id)
        .first()
    )
    if not site:
        raise NotFound("Construction site not found", {"id": site_id})
    return site


def list_sites(*, tenant_id: int, status: Optional[str] = None) -> list[ConstructionSite]:
    query = db.session.query(ConstructionSite).filter(ConstructionSite.tenant_id == tenant_id)
    if status:
        query = query.filter(ConstructionSite.status == status)
    return query.order_by(ConstructionSite.name).all()
