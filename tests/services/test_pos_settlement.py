"""
Tests for PosSettlementService.

Paid part of a bill: history only (exclude_from_balance).
Due part: a credit the customer owes.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from khata_engines.balance import BalanceCalculator
from khata_kernel.domain.values import PartyKind, PaymentMethod, TransactionCategory, TransactionType
from khata_kernel.exceptions import PartyNotFoundError, ValidationError
from khata_services.pos_settlement import PosCheckout, PosLineItem, PosSettlementService
from tests.conftest import TEST_NOW


@pytest.fixture
def pos(session, deterministic_clock, guard) -> PosSettlementService:
    return PosSettlementService(session, deterministic_clock, guard=guard)


@pytest.fixture
def checkout(vendor_id, customer):
    def _checkout(total="1000", paid="1000", **kwargs):
        kwargs.setdefault("customer_id", customer.id)
        return PosCheckout(
            vendor_id=vendor_id,
            bill_id="bill-7f3a",
            bill_number="B-0017",
            grand_total=Decimal(total),
            amount_paid=Decimal(paid),
            items=(PosLineItem("Rice 5kg", 2), PosLineItem("Toor Dal")),
            **kwargs,
        )

    return _checkout


def _customer_balance(store, vendor_id, customer_id):
    return BalanceCalculator().compute(
        transactions=store.list_for_party(vendor_id, customer_id),
        party_kind=PartyKind.CUSTOMER,
    )


class TestFullyPaid:
    def test_single_history_row(self, pos, checkout, test_actor_id):
        result = pos.record_checkout(checkout(payment_method=PaymentMethod.UPI), test_actor_id)

        paid = result.paid_entry
        assert result.due_entry is None
        assert paid.type is TransactionType.IN
        assert paid.amount == Decimal("1000")
        assert paid.category is TransactionCategory.PRODUCT_SALE
        assert paid.payment_method is PaymentMethod.UPI
        assert paid.exclude_from_balance is True
        assert paid.is_pos_sale is True
        assert paid.description == "POS Sale - Bill B-0017"
        assert paid.note == "2x Rice 5kg, 1x Toor Dal"
        assert (paid.reference_type, paid.reference_id) == ("bill", "bill-7f3a")
        assert paid.transaction_date == TEST_NOW

    def test_balance_unchanged(self, pos, checkout, store, vendor_id, customer, test_actor_id):
        pos.record_checkout(checkout(), test_actor_id)

        balance = _customer_balance(store, vendor_id, customer.id)
        assert balance.balance == 0
        assert balance.transaction_count == 1


class TestPartlyPaid:
    def test_paid_and_due_rows(self, pos, checkout, test_actor_id):
        result = pos.record_checkout(checkout(total="1000", paid="300"), test_actor_id)

        assert [e.amount for e in result.entries] == [Decimal("300"), Decimal("700")]
        due = result.due_entry
        assert due.type is TransactionType.OUT
        assert due.payment_method is PaymentMethod.CREDIT
        assert due.exclude_from_balance is False
        assert due.is_pos_sale is True
        assert due.description == "Credit Due - Bill B-0017"
        assert due.note == "Pending payment: 700.00 (2x Rice 5kg, 1x Toor Dal)"

    def test_customer_owes_due(self, pos, checkout, store, vendor_id, customer, test_actor_id):
        pos.record_checkout(checkout(total="1000", paid="300"), test_actor_id)

        balance = _customer_balance(store, vendor_id, customer.id)
        assert balance.balance == Decimal("-700")
        assert balance.describe() == "Customer will pay you ₹700"

    def test_unpaid_bill_has_only_due(self, pos, checkout, test_actor_id):
        result = pos.record_checkout(checkout(total="640.50", paid="0"), test_actor_id)

        assert result.paid_entry is None
        assert result.due_entry.amount == Decimal("640.50")

    def test_order_reference_preferred(self, pos, checkout, test_actor_id):
        result = pos.record_checkout(checkout(paid="400", order_id="ord-991"), test_actor_id)

        assert {(e.reference_type, e.reference_id) for e in result.entries} == {("order", "ord-991")}

    def test_due_note_without_items(self, pos, vendor_id, customer, test_actor_id):
        bare = PosCheckout(
            vendor_id=vendor_id,
            bill_id="b-1",
            bill_number="B-1",
            grand_total=Decimal("99"),
            amount_paid=Decimal("0"),
            customer_id=customer.id,
        )

        result = pos.record_checkout(bare, test_actor_id)

        assert result.due_entry.note == "Pending payment: 99.00"


class TestRejected:
    def test_walk_in_records_nothing(self, pos, checkout, store, vendor_id, test_actor_id, captured_logs):
        result = pos.record_checkout(checkout(paid="500", customer_id=None), test_actor_id)

        assert result.entries == []
        assert store.list_for_vendor(vendor_id) == []
        assert any(r["message"] == "pos_walk_in_skipped" for r in captured_logs())

    def test_overpayment(self, pos, checkout, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            pos.record_checkout(checkout(total="100", paid="150"), test_actor_id)
        assert exc_info.value.field == "amount_paid"

    def test_negative_paid(self, pos, checkout, test_actor_id):
        with pytest.raises(ValidationError):
            pos.record_checkout(checkout(paid="-5"), test_actor_id)

    def test_zero_total(self, pos, checkout, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            pos.record_checkout(checkout(total="0", paid="0"), test_actor_id)
        assert exc_info.value.field == "amount"

    def test_unknown_customer(self, pos, checkout, test_actor_id):
        with pytest.raises(PartyNotFoundError):
            pos.record_checkout(checkout(customer_id=uuid4()), test_actor_id)
