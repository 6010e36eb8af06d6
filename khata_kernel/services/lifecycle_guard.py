"""
LifecycleGuard -- the only write path for ledger transactions.

Responsibility:
    Moves drafts from PENDING to POSTED through the TransactionStore,
    refuses every edit to a posted transaction's financial facts, amends
    the two metadata fields that may change (note, attachments), and
    issues corrections as new reversing entries.

Architecture position:
    Kernel > Services -- imperative shell over TransactionStore.

States:
    PENDING (TransactionDraft) --create--> POSTED (LedgerTransaction)
    There is no void or deleted state.  A correction is a new POSTED entry
    of the opposite type, linked to the original by
    reference_type="correction", reference_id=<original id>.

Invariants enforced:
    - amount, type, transaction_date, the party reference and category
      never change after posting.
    - Only note and attachments are amended in place; updated_at and
      updated_by_id move with them.
    - An original is corrected at most once.

Failure modes:
    - ImmutableRecordError: an edit touches a posted financial field.
    - ValidationError: unknown edit keys, malformed metadata values,
      correcting an already corrected (or a reversing) entry.
    - TransactionNotFoundError: the transaction does not exist for the
      vendor.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import timezone, tzinfo
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from khata_kernel.domain.clock import Clock
from khata_kernel.domain.dtos import LedgerTransaction, TransactionDraft, attribute_name
from khata_kernel.domain.validation import coerce_uuid
from khata_kernel.domain.values import REFERENCE_CORRECTION, REFERENCE_REPLACEMENT
from khata_kernel.exceptions import ImmutableRecordError, ValidationError
from khata_kernel.logging_config import LogContext, get_logger
from khata_kernel.models.ledger_transaction import LedgerTransactionModel
from khata_kernel.services.base import BaseService
from khata_kernel.services.transaction_store import TransactionStore

logger = get_logger("services.lifecycle_guard")

# Financial facts of a posted transaction
IMMUTABLE_FIELDS = frozenset({
    "amount",
    "type",
    "transaction_date",
    "customer_id",
    "supplier_id",
    "party",
    "category",
})

# Metadata that may be amended after posting
AMENDABLE_FIELDS = frozenset({"note", "attachments"})

_POSTED_FIELDS = frozenset(f.name for f in fields(LedgerTransaction)) | {"partyRef"}

# Fields a replacement entry may override
_REPLACEABLE_FIELDS = frozenset({
    "amount",
    "type",
    "transaction_date",
    "category",
    "payment_method",
    "customer_id",
    "supplier_id",
    "description",
    "note",
    "attachments",
})


@dataclass(frozen=True)
class CorrectionResult:
    """The entries posted by one correction."""

    original_id: UUID
    reversal: LedgerTransaction
    replacement: LedgerTransaction | None = None


class LifecycleGuard(BaseService[LedgerTransactionModel]):
    """
    Enforces the PENDING -> POSTED lifecycle and append-only history.

    Non-goals:
        - Does NOT commit; the caller owns the transaction so a correction
          and its replacement land together.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        store: TransactionStore | None = None,
        tz: tzinfo = timezone.utc,
    ):
        super().__init__(session, clock)
        self.store = store or TransactionStore(session, self.clock, tz=tz)

    def create(self, draft: TransactionDraft, actor_id: UUID) -> LedgerTransaction:
        """Post a draft and return the persisted transaction."""
        transaction_id = self.store.append(draft, actor_id)
        return self.store.get(coerce_uuid(draft.vendor_id, "vendor_id"), transaction_id)

    def request_edit(
        self,
        vendor_id: UUID,
        transaction_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> LedgerTransaction:
        """
        Apply a metadata edit to a posted transaction.

        Args:
            vendor_id: Owning vendor.
            transaction_id: Posted transaction to amend.
            changes: Field -> new value.  camelCase wire keys are accepted.
            actor_id: Who is editing.

        Returns:
            The transaction after the amendment.

        Raises:
            ImmutableRecordError: If any key names a posted field other
                than note/attachments.  Nothing is applied.
            ValidationError: On unknown keys, an empty request, or a
                malformed note/attachments value.
        """
        row = self.store.get_row(vendor_id, transaction_id)
        normalized = {attribute_name(k): v for k, v in changes.items()}

        if not normalized:
            raise ValidationError("changes", "no fields to amend")

        blocked = sorted(
            k for k in normalized
            if k in IMMUTABLE_FIELDS or (k in _POSTED_FIELDS and k not in AMENDABLE_FIELDS)
        )
        if blocked:
            with LogContext.bind(vendor_id=vendor_id, transaction_id=transaction_id, actor_id=actor_id):
                logger.warning("edit_rejected_immutable", extra={"fields": blocked})
            raise ImmutableRecordError(
                entity_type="LedgerTransaction",
                entity_id=str(transaction_id),
                field=blocked[0],
                reason=(
                    f"Cannot edit {', '.join(blocked)} on a posted transaction; "
                    "post a correction instead"
                ),
            )

        unknown = sorted(k for k in normalized if k not in AMENDABLE_FIELDS)
        if unknown:
            raise ValidationError(unknown[0], "is not a ledger transaction field")

        if "note" in normalized:
            note = normalized["note"]
            if note is not None and not isinstance(note, str):
                raise ValidationError("note", "must be a string or null")
            row.note = note
        if "attachments" in normalized:
            attachments = normalized["attachments"]
            if attachments is None:
                attachments = []
            if isinstance(attachments, str) or not all(isinstance(a, str) for a in attachments):
                raise ValidationError("attachments", "must be a list of strings")
            row.attachments = list(attachments)

        row.updated_at = self.clock.now_utc()
        row.updated_by_id = actor_id
        self.session.flush()

        with LogContext.bind(vendor_id=vendor_id, transaction_id=transaction_id, actor_id=actor_id):
            logger.info("transaction_amended", extra={"fields": sorted(normalized)})
        return row.to_dto()

    def _find_correction(self, vendor_id: UUID, original_id: UUID) -> LedgerTransactionModel | None:
        stmt = (
            select(LedgerTransactionModel)
            .where(LedgerTransactionModel.vendor_id == vendor_id)
            .where(LedgerTransactionModel.reference_type == REFERENCE_CORRECTION)
            .where(LedgerTransactionModel.reference_id == str(original_id))
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def correct(
        self,
        vendor_id: UUID,
        transaction_id: UUID,
        actor_id: UUID,
        **replacement: Any,
    ) -> CorrectionResult:
        """
        Correct a posted transaction by reversing it.

        Posts an entry of the opposite type with the same amount, party,
        date and balance treatment, so the pair nets to zero.  When
        ``replacement`` values are given, a second entry carrying the
        corrected facts is posted as well (every field not overridden is
        taken from the original).

        Raises:
            ValidationError: If the original was already corrected, is
                itself a correction, or a replacement key is not allowed.
        """
        original = self.store.get(vendor_id, transaction_id)

        if original.reference_type == REFERENCE_CORRECTION:
            raise ValidationError("transaction_id", "a correction entry cannot be corrected")
        if self._find_correction(vendor_id, original.id) is not None:
            raise ValidationError("transaction_id", f"{original.id} has already been corrected")

        overrides = {attribute_name(k): v for k, v in replacement.items()}
        bad = sorted(k for k in overrides if k not in _REPLACEABLE_FIELDS)
        if bad:
            raise ValidationError(bad[0], "cannot be set on a replacement entry")

        reversal_draft = TransactionDraft(
            vendor_id=vendor_id,
            type=original.type.opposite,
            amount=original.amount,
            transaction_date=original.transaction_date,
            category=original.category,
            payment_method=original.payment_method,
            customer_id=original.customer_id,
            supplier_id=original.supplier_id,
            description=f"Correction of {original.id}",
            reference_type=REFERENCE_CORRECTION,
            reference_id=str(original.id),
            exclude_from_balance=original.exclude_from_balance,
            is_pos_sale=original.is_pos_sale,
        )
        reversal = self.store.get(vendor_id, self.store.append(reversal_draft, actor_id))

        replacement_txn = None
        if overrides:
            base: dict[str, Any] = {
                "vendor_id": vendor_id,
                "type": original.type,
                "amount": original.amount,
                "transaction_date": original.transaction_date,
                "category": original.category,
                "payment_method": original.payment_method,
                "customer_id": original.customer_id,
                "supplier_id": original.supplier_id,
                "description": original.description,
                "note": original.note,
                "attachments": original.attachments,
                "exclude_from_balance": original.exclude_from_balance,
                "is_pos_sale": original.is_pos_sale,
            }
            if "customer_id" in overrides or "supplier_id" in overrides:
                # A re-pointed party replaces the whole reference
                base["customer_id"] = None
                base["supplier_id"] = None
            base.update(overrides)
            base["attachments"] = tuple(base["attachments"] or ())
            replacement_draft = TransactionDraft(
                reference_type=REFERENCE_REPLACEMENT,
                reference_id=str(original.id),
                **base,
            )
            replacement_txn = self.store.get(
                vendor_id, self.store.append(replacement_draft, actor_id)
            )

        with LogContext.bind(vendor_id=vendor_id, transaction_id=original.id, actor_id=actor_id):
            logger.info(
                "transaction_corrected",
                extra={
                    "reversal_id": str(reversal.id),
                    "replacement_id": str(replacement_txn.id) if replacement_txn else None,
                },
            )
        return CorrectionResult(
            original_id=original.id,
            reversal=reversal,
            replacement=replacement_txn,
        )
