# Overview: Service-layer operations for customers; encapsulates receivable bookkeeping.

"""
Customer service.

BALANCE UPDATERS:
apply_sale_charge / apply_payment / apply_return_credit / reverse_sale mutate
an already-loaded (tenant-scoped, locked) Customer inside the caller's ledger
transaction and never commit. Every one of them clamps total_spent and
current_balance at zero: a customer can never owe a negative amount, even if
returns or deletions exceed what is outstanding.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import or_

from ..errors import DuplicateKey, InvalidQuantity, NotFound, ValidationFailed
from ..extensions import db
from ..models import Customer
from ..time_utils import utcnow
from .ledger_service import ledger_transaction
from .pagination import paginate


logger = logging.getLogger(__name__)


# =============================================================================
# BALANCE UPDATERS (run inside a ledger transaction)
# =============================================================================

def apply_sale_charge(customer: Customer, *, total_cents: int, paid_cents: int, sale_at=None) -> None:
    customer.total_spent_cents = (customer.total_spent_cents or 0) + total_cents
    customer.last_sale_at = sale_at or utcnow()
    outstanding = total_cents - paid_cents
    if outstanding > 0:
        customer.current_balance_cents = (customer.current_balance_cents or 0) + outstanding


def apply_payment(customer: Customer, *, amount_cents: int) -> None:
    customer.current_balance_cents = max(0, (customer.current_balance_cents or 0) - amount_cents)


def apply_return_credit(customer: Customer, *, value_cents: int) -> None:
    customer.total_spent_cents = max(0, (customer.total_spent_cents or 0) - value_cents)
    customer.current_balance_cents = max(0, (customer.current_balance_cents or 0) - value_cents)


def reverse_sale(customer: Customer, *, total_cents: int, paid_cents: int) -> None:
    customer.total_spent_cents = max(0, (customer.total_spent_cents or 0) - total_cents)
    outstanding = total_cents - paid_cents
    if outstanding > 0:
        customer.current_balance_cents = max(0, (customer.current_balance_cents or 0) - outstanding)


# =============================================================================
# CUSTOMER CRUD
# =============================================================================

def create_customer(
    *,
    tenant_id: int,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
) -> Customer:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("name is required")
    email = email.strip().lower() if email else None

    with ledger_transaction(tenant_id=tenant_id) as tx:
        if email:
            dup = (
                tx.session.query(Customer.id)
                .filter(Customer.tenant_id == tenant_id, Customer.email == email)
                .first()
            )
            if dup:
                raise DuplicateKey(f"Customer with email '{email}' already exists", {"email": email})

        customer = Customer(tenant_id=tenant_id, name=name, email=email, phone=phone, address=address)
        tx.session.add(customer)

    return customer


def get_customer(*, tenant_id: int, customer_id: int) -> Customer:
    customer = (
        db.session.query(Customer)
        .filter(Customer.id == customer_id, Customer.tenant_id == tenant_id)
        .first()
    )
    if not customer:
        raise NotFound("Customer not found", {"id": customer_id})
    return customer


def list_customers(
    *,
    tenant_id: int,
    search: Optional[str] = None,
    with_balance: bool = False,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    query = db.session.query(Customer).filter(Customer.tenant_id == tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(Customer.name.ilike(pattern), Customer.email.ilike(pattern), Customer.phone.ilike(pattern))
        )
    if with_balance:
        query = query.filter(Customer.current_balance_cents > 0)
    return paginate(query.order_by(Customer.name, Customer.id), page=page, limit=limit)


def record_customer_payment(
    *,
    tenant_id: int,
    customer_id: int,
    amount_cents: int,
    actor_user_id: Optional[int] = None,
) -> Customer:
    """
    Payment against the customer's running balance (not tied to one sale).

    Overpaying simply clears the balance.
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidQuantity("amount_cents must be greater than zero", {"amount_cents": amount_cents})

    with ledger_transaction(tenant_id=tenant_id, actor_user_id=actor_user_id) as tx:
        customer = tx.get(Customer, customer_id, lock=True, label="Customer")
        apply_payment(customer, amount_cents=amount_cents)

    logger.info("Customer %s paid %s; balance now %s", customer_id, amount_cents, customer.current_balance_cents)
    return customer
