"""
Tenant Service: tenant bootstrap and lookup

WHY: Every ledger query is filtered by tenant_id. Authentication happens
upstream (gateway), so this service only answers "does this tenant exist and
is it allowed to transact", and seeds per-tenant state (numbering counters).
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateKey, IntegrityViolation, NotFound, ValidationFailed
from ..extensions import db
from ..models import Tenant
from .concurrency import is_unique_violation
from .sequence_service import seed_sequences


logger = logging.getLogger(__name__)


def create_tenant(*, name: str, code: str) -> Tenant:
    """Create a tenant and its numbering counters in one commit."""
    name = (name or "").strip()
    code = (code or "").strip().upper()
    if not name or not code:
        raise ValidationFailed("name and code are required")

    tenant = Tenant(name=name, code=code, is_active=True)
    db.session.add(tenant)
    try:
        db.session.flush()
        seed_sequences(db.session, tenant_id=tenant.id)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if not is_unique_violation(exc):
            raise IntegrityViolation("Tenant write rejected by a database constraint", {"code": code}) from exc
        raise DuplicateKey(f"Tenant code '{code}' already exists", {"code": code}) from exc

    logger.info("Created tenant %s (%s)", tenant.id, tenant.code)
    return tenant


def get_active_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None or not tenant.is_active:
        raise NotFound("Tenant not found or inactive", {"tenant_id": tenant_id})
    return tenant


def get_tenant_by_code(code: str) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(code=(code or "").strip().upper()).first()
    if tenant is None:
        raise NotFound(f"Tenant '{code}' not found", {"code": code})
    return tenant


def list_tenants() -> list[Tenant]:
    return db.session.query(Tenant).order_by(Tenant.id).all()
