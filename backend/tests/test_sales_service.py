# Overview: Pytest coverage for sales, payments, returns and customer balances.

import pytest

from bizledger.errors import DuplicateKey, InsufficientStock, InvalidQuantity, NotFound, ValidationFailed
from bizledger.extensions import db
from bizledger.models import LedgerEntry, Sale
from bizledger.services import customer_service, sales_service


def _sell(tenant, item, quantity, **kwargs):
    return sales_service.create_sale(
        tenant_id=tenant.id,
        items=[{"item_id": item.id, "quantity": quantity}],
        **kwargs,
    )


class TestCreateSale:

    def test_totals_are_computed(self, tenant_a, item_a):
        sale = _sell(tenant_a, item_a, 3, tax_cents=500, discount_cents=200, amount_paid_cents=3300)

        assert sale.subtotal_cents == 3000
        assert sale.total_amount_cents == 3300
        assert sale.payment_status == "PAID"
        assert sale.status == "COMPLETED"
        assert len(sale.lines) == 1
        line = sale.lines[0]
        assert line.unit_price_cents == 1000
        assert line.cost_price_cents == 600
        assert line.line_total_cents == 3000
        assert line.item_sku == "CEM-50KG"

    def test_price_override_per_line(self, tenant_a, item_a):
        sale = sales_service.create_sale(
            tenant_id=tenant_a.id,
            items=[{"item_id": item_a.id, "quantity": 2, "unit_price_cents": 750}],
        )
        assert sale.subtotal_cents == 1500
        assert sale.payment_status == "UNPAID"

    def test_discount_larger_than_total_is_rejected(self, tenant_a, item_a):
        with pytest.raises(ValidationFailed):
            _sell(tenant_a, item_a, 1, discount_cents=5000)
        assert item_a.quantity == 10

    def test_overpayment_is_rejected(self, tenant_a, item_a):
        with pytest.raises(ValidationFailed):
            _sell(tenant_a, item_a, 1, amount_paid_cents=1001)

    def test_duplicate_item_lines_are_rejected(self, tenant_a, item_a):
        with pytest.raises(ValidationFailed):
            sales_service.create_sale(
                tenant_id=tenant_a.id,
                items=[{"item_id": item_a.id, "quantity": 1}, {"item_id": item_a.id, "quantity": 2}],
            )

    @pytest.mark.parametrize("quantity", [0, -2, "abc", 1.5, True, None])
    def test_invalid_quantity(self, tenant_a, item_a, quantity):
        with pytest.raises(InvalidQuantity):
            _sell(tenant_a, item_a, quantity)

    def test_empty_sale_is_rejected(self, tenant_a):
        with pytest.raises(ValidationFailed):
            sales_service.create_sale(tenant_id=tenant_a.id, items=[])

    def test_unknown_payment_method(self, tenant_a, item_a):
        with pytest.raises(ValidationFailed):
            _sell(tenant_a, item_a, 1, payment_method="BARTER")

    def test_unknown_customer(self, tenant_a, item_a):
        with pytest.raises(NotFound):
            _sell(tenant_a, item_a, 1, customer_id=99999)
        assert item_a.quantity == 10

    def test_customer_is_charged(self, tenant_a, item_a, customer_a):
        sale = _sell(tenant_a, item_a, 3, amount_paid_cents=1000, customer_id=customer_a.id)

        assert sale.payment_status == "PARTIAL"
        assert customer_a.total_spent_cents == 3000
        assert customer_a.current_balance_cents == 2000
        assert customer_a.last_sale_at is not None


class TestReceiptNumbers:

    def test_numbers_are_sequential_per_tenant(self, tenant_a, tenant_b, item_a, make_item):
        item_b = make_item(tenant_b)

        first = _sell(tenant_a, item_a, 1)
        second = _sell(tenant_a, item_a, 1)
        other = _sell(tenant_b, item_b, 1)

        assert first.receipt_number == "S-00001"
        assert second.receipt_number == "S-00002"
        assert other.receipt_number == "S-00001"

    def test_failed_sale_does_not_consume_a_number(self, tenant_a, item_a):
        _sell(tenant_a, item_a, 1)
        with pytest.raises(InsufficientStock):
            _sell(tenant_a, item_a, 50)
        sale = _sell(tenant_a, item_a, 1)

        assert sale.receipt_number == "S-00002"


class TestPayments:

    def test_payment_settles_sale_and_customer(self, tenant_a, item_a, customer_a):
        sale = _sell(tenant_a, item_a, 3, amount_paid_cents=1000, customer_id=customer_a.id)

        sale = sales_service.record_payment(tenant_id=tenant_a.id, sale_id=sale.id, amount_cents=2000)

        assert sale.amount_paid_cents == 3000
        assert sale.payment_status == "PAID"
        assert customer_a.current_balance_cents == 0

    def test_payment_cannot_exceed_outstanding(self, tenant_a, item_a):
        sale = _sell(tenant_a, item_a, 1, amount_paid_cents=400)

        with pytest.raises(ValidationFailed):
            sales_service.record_payment(tenant_id=tenant_a.id, sale_id=sale.id, amount_cents=601)

        db.session.expire_all()
        assert sale.amount_paid_cents == 400

    @pytest.mark.parametrize("amount", [0, -10, True, "100"])
    def test_payment_amount_must_be_positive_int(self, tenant_a, item_a, amount):
        sale = _sell(tenant_a, item_a, 1)
        with pytest.raises(InvalidQuantity):
            sales_service.record_payment(tenant_id=tenant_a.id, sale_id=sale.id, amount_cents=amount)

    def test_customer_level_payment_clamps_at_zero(self, tenant_a, item_a, customer_a):
        _sell(tenant_a, item_a, 2, customer_id=customer_a.id)

        customer = customer_service.record_customer_payment(
            tenant_id=tenant_a.id, customer_id=customer_a.id, amount_cents=5000
        )
        assert customer.current_balance_cents == 0


class TestReturns:

    def test_partial_returns_are_validated_cumulatively(self, tenant_a, item_a):
        sale = _sell(tenant_a, item_a, 5)

        sale = sales_service.process_return(
            tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 3}]
        )
        assert sale.status == "PARTIALLY_RETURNED"
        assert sale.lines[0].returned_quantity == 3

        with pytest.raises(InvalidQuantity):
            sales_service.process_return(
                tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 3}]
            )
        assert item_a.quantity == 8

        sale = sales_service.process_return(
            tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 2}]
        )
        assert sale.status == "RETURNED"
        assert item_a.quantity == 10

    def test_return_reduces_sale_and_customer_totals(self, tenant_a, item_a, customer_a):
        sale = _sell(tenant_a, item_a, 5, amount_paid_cents=5000, customer_id=customer_a.id)

        sale = sales_service.process_return(
            tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 3}]
        )

        assert sale.total_amount_cents == 2000
        assert sale.amount_paid_cents == 2000
        assert sale.payment_status == "PAID"
        assert customer_a.total_spent_cents == 2000
        assert customer_a.current_balance_cents == 0

    def test_return_of_item_not_on_sale(self, tenant_a, item_a, make_item):
        other = make_item(tenant_a)
        sale = _sell(tenant_a, item_a, 1)

        with pytest.raises(NotFound):
            sales_service.process_return(
                tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": other.id, "quantity": 1}]
            )

    def test_balance_never_goes_negative(self, tenant_a, item_a, customer_a):
        sale = _sell(tenant_a, item_a, 5, customer_id=customer_a.id)
        customer_service.record_customer_payment(
            tenant_id=tenant_a.id, customer_id=customer_a.id, amount_cents=5000
        )

        sales_service.process_return(
            tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 2}]
        )

        assert customer_a.current_balance_cents == 0
        assert customer_a.total_spent_cents == 3000


class TestDeleteSale:

    def test_delete_restocks_only_unreturned_quantity(self, tenant_a, item_a, customer_a):
        sale = _sell(tenant_a, item_a, 4, amount_paid_cents=1000, customer_id=customer_a.id)
        sales_service.process_return(
            tenant_id=tenant_a.id, sale_id=sale.id, returned_items=[{"item_id": item_a.id, "quantity": 1}]
        )
        assert customer_a.total_spent_cents == 3000
        assert customer_a.current_balance_cents == 2000

        sale_id = sale.id
        result = sales_service.delete_sale(tenant_id=tenant_a.id, sale_id=sale_id)

        assert result["restocked"] == [{"item_id": item_a.id, "quantity": 3}]
        assert item_a.quantity == 10
        assert customer_a.total_spent_cents == 0
        assert customer_a.current_balance_cents == 0
        assert db.session.get(Sale, sale_id) is None

        entry_types = [
            e.entry_type
            for e in db.session.query(LedgerEntry).filter_by(item_id=item_a.id).order_by(LedgerEntry.id)
        ]
        assert entry_types == ["OPENING_BALANCE", "SALE", "RETURN", "SALE_REVERSAL"]

    def test_delete_missing_sale(self, tenant_a):
        with pytest.raises(NotFound):
            sales_service.delete_sale(tenant_id=tenant_a.id, sale_id=12345)


class TestCustomers:

    def test_duplicate_email_is_rejected(self, tenant_a, customer_a):
        with pytest.raises(DuplicateKey):
            customer_service.create_customer(tenant_id=tenant_a.id, name="Other", email="JANE@example.com")

    def test_same_email_in_other_tenant_is_allowed(self, tenant_b, customer_a):
        other = customer_service.create_customer(tenant_id=tenant_b.id, name="Jane", email="jane@example.com")
        assert other.tenant_id == tenant_b.id

    def test_list_with_balance(self, tenant_a, item_a, customer_a):
        customer_service.create_customer(tenant_id=tenant_a.id, name="Paid Up")
        _sell(tenant_a, item_a, 1, customer_id=customer_a.id)

        result = customer_service.list_customers(tenant_id=tenant_a.id, with_balance=True)
        assert [c.id for c in result["items"]] == [customer_a.id]
        assert result["total"] == 1
