"""
Tests for LifecycleGuard.

Covers:
- create: PENDING -> POSTED
- request_edit: financial fields refused, note/attachments amended
- correct: reversal (+ optional replacement) nets the original out
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from khata_engines.balance import BalanceCalculator
from khata_kernel.domain.dtos import TransactionDraft
from khata_kernel.domain.values import (
    REFERENCE_CORRECTION,
    REFERENCE_REPLACEMENT,
    BalancePosition,
    PartyKind,
    PaymentMethod,
    TransactionCategory,
    TransactionState,
    TransactionType,
)
from khata_kernel.exceptions import (
    ImmutableRecordError,
    TransactionNotFoundError,
    ValidationError,
)
from tests.conftest import TEST_NOW


@pytest.fixture
def posted(guard, make_draft, customer, test_actor_id):
    """A posted 1000 credit given to the customer."""
    return guard.create(
        make_draft(
            TransactionType.OUT,
            "1000",
            customer_id=customer.id,
            category=TransactionCategory.PRODUCT_SALE,
            payment_method=PaymentMethod.CREDIT,
            description="Rice 25kg",
        ),
        test_actor_id,
    )


class TestCreate:
    def test_create_returns_posted(self, posted):
        assert posted.state is TransactionState.POSTED
        assert posted.amount == Decimal("1000")

    def test_invalid_draft_not_posted(self, guard, make_draft, store, vendor_id, test_actor_id):
        with pytest.raises(ValidationError):
            guard.create(make_draft(amount="-1"), test_actor_id)

        assert store.list_for_vendor(vendor_id) == []

    def test_create_from_wire_payload(self, guard, customer, vendor_id, store, test_actor_id):
        """String ids from a create payload are normalized before the read-back."""
        draft = TransactionDraft.from_dict({
            "vendorId": str(vendor_id),
            "customerId": str(customer.id),
            "type": "out",
            "amount": "500",
            "transactionDate": "2024-03-15T10:00:00Z",
            "paymentMethod": "credit",
        })

        created = guard.create(draft, test_actor_id)

        assert created.vendor_id == vendor_id
        assert created.customer_id == customer.id
        assert created.amount == Decimal("500")
        assert [t.id for t in store.list_for_vendor(vendor_id)] == [created.id]


class TestRequestEdit:
    """Only note and attachments change after posting."""

    @pytest.mark.parametrize(
        "changes",
        [
            {"amount": Decimal("900")},
            {"type": "in"},
            {"transaction_date": TEST_NOW - timedelta(days=1)},
            {"category": "service"},
            {"customer_id": uuid4()},
            {"supplierId": uuid4()},
            {"party": "someone"},
            {"payment_method": "cash"},
            {"excludeFromBalance": True},
        ],
    )
    def test_financial_fields_refused(self, guard, posted, vendor_id, test_actor_id, changes):
        with pytest.raises(ImmutableRecordError) as exc_info:
            guard.request_edit(vendor_id, posted.id, changes, test_actor_id)

        assert exc_info.value.entity_id == str(posted.id)
        assert exc_info.value.code == "IMMUTABLE_RECORD"

    def test_mixed_request_applies_nothing(self, guard, store, posted, vendor_id, test_actor_id):
        with pytest.raises(ImmutableRecordError) as exc_info:
            guard.request_edit(
                vendor_id, posted.id, {"note": "changed", "amount": Decimal("1")}, test_actor_id
            )

        assert exc_info.value.field == "amount"
        assert store.get(vendor_id, posted.id).note is None

    def test_refusal_is_logged(self, guard, posted, vendor_id, test_actor_id, captured_logs):
        with pytest.raises(ImmutableRecordError):
            guard.request_edit(vendor_id, posted.id, {"amount": Decimal("1")}, test_actor_id)

        records = [r for r in captured_logs() if r["message"] == "edit_rejected_immutable"]
        assert records
        assert records[-1]["fields"] == ["amount"]
        assert records[-1]["level"] == "WARNING"

    def test_unknown_field(self, guard, posted, vendor_id, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            guard.request_edit(vendor_id, posted.id, {"colour": "red"}, test_actor_id)
        assert exc_info.value.field == "colour"

    def test_empty_request(self, guard, posted, vendor_id, test_actor_id):
        with pytest.raises(ValidationError):
            guard.request_edit(vendor_id, posted.id, {}, test_actor_id)

    def test_note_amended(self, guard, posted, vendor_id, test_actor_id, deterministic_clock):
        deterministic_clock.advance(60)
        editor = uuid4()

        updated = guard.request_edit(vendor_id, posted.id, {"note": "Delivered Tuesday"}, editor)

        assert updated.note == "Delivered Tuesday"
        assert updated.amount == posted.amount
        assert updated.updated_by_id == editor
        assert updated.updated_at == TEST_NOW + timedelta(seconds=60)

    def test_attachments_amended_with_wire_key(self, guard, posted, vendor_id, test_actor_id):
        updated = guard.request_edit(
            vendor_id, posted.id, {"attachments": ["receipts/17.jpg", "receipts/17b.jpg"]}, test_actor_id
        )

        assert updated.attachments == ("receipts/17.jpg", "receipts/17b.jpg")

    def test_note_cleared(self, guard, posted, vendor_id, test_actor_id):
        guard.request_edit(vendor_id, posted.id, {"note": "temporary"}, test_actor_id)

        updated = guard.request_edit(vendor_id, posted.id, {"note": None}, test_actor_id)

        assert updated.note is None

    @pytest.mark.parametrize("bad", ["one.jpg", [1, 2]])
    def test_malformed_attachments(self, guard, posted, vendor_id, test_actor_id, bad):
        with pytest.raises(ValidationError) as exc_info:
            guard.request_edit(vendor_id, posted.id, {"attachments": bad}, test_actor_id)
        assert exc_info.value.field == "attachments"

    def test_other_vendor_cannot_edit(self, guard, posted, test_actor_id):
        with pytest.raises(TransactionNotFoundError):
            guard.request_edit(uuid4(), posted.id, {"note": "x"}, test_actor_id)


class TestCorrect:
    """Corrections append; nothing is rewritten."""

    def test_reversal_mirrors_original(self, guard, posted, vendor_id, test_actor_id):
        result = guard.correct(vendor_id, posted.id, test_actor_id)

        reversal = result.reversal
        assert result.original_id == posted.id
        assert result.replacement is None
        assert reversal.type is TransactionType.IN
        assert reversal.amount == posted.amount
        assert reversal.customer_id == posted.customer_id
        assert reversal.transaction_date == posted.transaction_date
        assert reversal.exclude_from_balance == posted.exclude_from_balance
        assert reversal.reference_type == REFERENCE_CORRECTION
        assert reversal.reference_id == str(posted.id)

    def test_original_untouched(self, guard, store, posted, vendor_id, test_actor_id):
        guard.correct(vendor_id, posted.id, test_actor_id, amount=Decimal("800"))

        assert store.get(vendor_id, posted.id) == posted

    def test_reversal_nets_to_zero(self, guard, store, posted, customer, vendor_id, test_actor_id):
        guard.correct(vendor_id, posted.id, test_actor_id)

        balance = BalanceCalculator().compute(
            transactions=store.list_for_party(vendor_id, customer.id),
            party_kind=PartyKind.CUSTOMER,
        )

        assert balance.balance == 0
        assert balance.transaction_count == 2

    def test_correct_and_replace(self, guard, store, posted, customer, vendor_id, test_actor_id):
        """Credit of 1000 corrected to 800: customer now owes 800 over three rows."""
        result = guard.correct(vendor_id, posted.id, test_actor_id, amount=Decimal("800"))

        replacement = result.replacement
        assert replacement.amount == Decimal("800")
        assert replacement.type is TransactionType.OUT
        assert replacement.description == "Rice 25kg"
        assert replacement.reference_type == REFERENCE_REPLACEMENT
        assert replacement.reference_id == str(posted.id)

        balance = BalanceCalculator().compute(
            transactions=store.list_for_party(vendor_id, customer.id),
            party_kind=PartyKind.CUSTOMER,
        )
        assert balance.balance == Decimal("-800")
        assert balance.position is BalancePosition.WILL_GET
        assert balance.transaction_count == 3

    def test_replacement_can_move_party(self, guard, posted, supplier, vendor_id, test_actor_id):
        result = guard.correct(vendor_id, posted.id, test_actor_id, supplierId=supplier.id)

        assert result.replacement.supplier_id == supplier.id
        assert result.replacement.customer_id is None

    def test_second_correction_refused(self, guard, posted, vendor_id, test_actor_id):
        guard.correct(vendor_id, posted.id, test_actor_id)

        with pytest.raises(ValidationError):
            guard.correct(vendor_id, posted.id, test_actor_id)

    def test_correction_entry_cannot_be_corrected(self, guard, posted, vendor_id, test_actor_id):
        reversal = guard.correct(vendor_id, posted.id, test_actor_id).reversal

        with pytest.raises(ValidationError):
            guard.correct(vendor_id, reversal.id, test_actor_id)

    def test_disallowed_replacement_key(self, guard, store, posted, vendor_id, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            guard.correct(vendor_id, posted.id, test_actor_id, is_pos_sale=True)

        assert exc_info.value.field == "is_pos_sale"
        assert len(store.list_for_vendor(vendor_id)) == 1

    def test_logs_correction(self, guard, posted, vendor_id, test_actor_id, captured_logs):
        result = guard.correct(vendor_id, posted.id, test_actor_id)

        records = [r for r in captured_logs() if r["message"] == "transaction_corrected"]
        assert records[-1]["reversal_id"] == str(result.reversal.id)
        assert records[-1]["transaction_id"] == str(posted.id)
