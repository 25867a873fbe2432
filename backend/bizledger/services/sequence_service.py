# Overview: Service-layer operations for per-tenant document numbering.

"""
Receipt / purchase-order numbering.

WHY A COUNTER ROW:
Scanning for the "last" sale and incrementing its number races under
concurrent creation (two callers read the same last number). Instead each
tenant owns one tenant_sequences row per document type and allocation is a
single atomic UPDATE ... SET next_value = next_value + 1 followed by a read
in the SAME transaction. The row stays locked until the caller commits, so
concurrent allocations serialize, and a rollback hands the number back.

FORMAT:
The counter is a plain integer; PREFIX-00001 is only a rendering of it.
"""

from __future__ import annotations

from flask import current_app, has_app_context
from sqlalchemy import update

from ..errors import ValidationFailed
from ..models import TenantSequence


SEQUENCE_SALE = "sale"
SEQUENCE_PURCHASE_ORDER = "purchase_order"

DOCUMENT_PREFIXES = {
    SEQUENCE_SALE: "S",
    SEQUENCE_PURCHASE_ORDER: "PO",
}

DEFAULT_PAD = 5


def format_document_number(prefix: str, value: int, pad: int = DEFAULT_PAD) -> str:
    return f"{prefix}-{value:0{pad}d}"


def seed_sequences(session, *, tenant_id: int) -> None:
    """Create the counter rows for a new tenant (caller commits)."""
    for name in DOCUMENT_PREFIXES:
        session.add(TenantSequence(tenant_id=tenant_id, sequence_name=name, next_value=1))
    session.flush()


def next_sequence_value(session, *, tenant_id: int, sequence_name: str) -> int:
    """
    Allocate the next value of a tenant counter inside the caller's transaction.

    A missing row (tenant created before seeding) is inserted on first use;
    if two first-uses race, the loser's flush raises IntegrityError, which the
    ledger transaction reports as DuplicateKey for the caller to retry.
    """
    if not tenant_id:
        raise ValidationFailed("tenant_id is required")
    if sequence_name not in DOCUMENT_PREFIXES:
        raise ValidationFailed(f"Unknown sequence: {sequence_name}")

    stmt = (
        update(TenantSequence)
        .where(
            TenantSequence.tenant_id == tenant_id,
            TenantSequence.sequence_name == sequence_name,
        )
        .values(next_value=TenantSequence.next_value + 1)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount:
        current = (
            session.query(TenantSequence.next_value)
            .filter_by(tenant_id=tenant_id, sequence_name=sequence_name)
            .scalar()
        )
        return current - 1

    session.add(TenantSequence(tenant_id=tenant_id, sequence_name=sequence_name, next_value=2))
    session.flush()
    return 1


def next_document_number(session, *, tenant_id: int, document_type: str) -> str:
    value = next_sequence_value(session, tenant_id=tenant_id, sequence_name=document_type)
    pad = current_app.config.get("DOCUMENT_NUMBER_PAD", DEFAULT_PAD) if has_app_context() else DEFAULT_PAD
    return format_document_number(DOCUMENT_PREFIXES[document_type], value, pad)
