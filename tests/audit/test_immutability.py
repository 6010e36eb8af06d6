"""
ORM-level immutability of posted ledger transactions.

These tests bypass the lifecycle guard and mutate model instances
directly; the before_update/before_delete listeners must still refuse.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from khata_kernel.exceptions import ImmutableRecordError
from khata_kernel.models import LEDGER_MUTABLE_AFTER_POST, LedgerTransactionModel


@pytest.fixture
def posted_row(store, make_draft, customer, vendor_id, test_actor_id) -> LedgerTransactionModel:
    txn_id = store.append(make_draft("out", "450", customer_id=customer.id), test_actor_id)
    return store.get_row(vendor_id, txn_id)


class TestUpdateBlocked:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("amount", Decimal("1.00")),
            ("type", "in"),
            ("category", "refund"),
            ("payment_method", "bank"),
            ("exclude_from_balance", True),
            ("reference_id", "forged"),
        ],
    )
    def test_direct_mutation_refused(self, session, posted_row, field, value):
        setattr(posted_row, field, value)

        with pytest.raises(ImmutableRecordError) as exc_info:
            session.flush()

        assert exc_info.value.field == field
        session.rollback()

    def test_transaction_date_refused(self, session, posted_row):
        posted_row.transaction_date = posted_row.transaction_date - timedelta(days=3)

        with pytest.raises(ImmutableRecordError):
            session.flush()
        session.rollback()

    def test_party_reference_refused(self, session, posted_row):
        posted_row.customer_id = uuid4()

        with pytest.raises(ImmutableRecordError):
            session.flush()
        session.rollback()

    def test_violation_logged(self, session, posted_row, captured_logs):
        posted_row.amount = Decimal("2.00")

        with pytest.raises(ImmutableRecordError):
            session.flush()
        session.rollback()

        records = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert records
        assert records[-1]["field"] == "amount"
        assert records[-1]["level"] == "ERROR"


class TestMetadataAllowed:
    def test_mutable_set(self):
        assert LEDGER_MUTABLE_AFTER_POST == {"note", "attachments", "updated_at", "updated_by_id"}

    def test_note_and_attachments_flush(self, session, posted_row, test_actor_id):
        posted_row.note = "Paid partly in kind"
        posted_row.attachments = ["bills/450.pdf"]
        posted_row.updated_by_id = test_actor_id

        session.flush()

        assert posted_row.note == "Paid partly in kind"


class TestDeleteBlocked:
    def test_delete_refused(self, session, posted_row):
        session.delete(posted_row)

        with pytest.raises(ImmutableRecordError) as exc_info:
            session.flush()

        assert exc_info.value.entity_id == str(posted_row.id)
        session.rollback()
