"""
TransactionStore -- the append-only persistence boundary for ledger rows.

Responsibility:
    Validates a ``TransactionDraft`` (PENDING), resolves its party reference
    inside the vendor, and inserts it as a POSTED row.  Reads are always
    scoped by ``vendor_id``.

Architecture position:
    Kernel > Services -- imperative shell.  The lifecycle guard is the
    public write path; the store is what it delegates to.

Invariants enforced:
    - Insert-only.  There is no update or delete method; a posted row's
      financial fields never change.
    - Every row is admitted through ``validate_draft``.
    - A referenced customer or supplier exists under the same vendor.
    - Every read carries the vendor id; another vendor's row is reported
      as not found.

Failure modes:
    - ValidationError: the draft violates a ledger invariant.
    - PartyNotFoundError: the referenced party does not exist for the
      vendor.
    - TransactionNotFoundError: ``get`` on an unknown id.
    - IntegrityError: a duplicate (recurrence_source_id, occurrence_date)
      pair; the recurrence materializer absorbs it.
"""

from datetime import date, timezone, tzinfo
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from khata_kernel.domain.clock import Clock
from khata_kernel.domain.dtos import LedgerTransaction, TransactionDraft
from khata_kernel.domain.validation import validate_draft
from khata_kernel.domain.values import PartyKind
from khata_kernel.exceptions import PartyNotFoundError, TransactionNotFoundError
from khata_kernel.logging_config import LogContext, get_logger
from khata_kernel.models.ledger_transaction import LedgerTransactionModel
from khata_kernel.models.party import PartyModel
from khata_kernel.services.base import BaseService

logger = get_logger("services.transaction_store")


class TransactionStore(BaseService[LedgerTransactionModel]):
    """
    Append-only store of posted ledger transactions.

    Contract:
        ``append`` turns a valid draft into a POSTED row and returns its id.
        The session is flushed, never committed.
        Recurrence bounds are checked against local dates in ``tz``.
    """

    def __init__(self, session: Session, clock: Clock | None = None, tz: tzinfo = timezone.utc):
        super().__init__(session, clock)
        self.tz = tz

    def _resolve_party(self, vendor_id: UUID, party_id: UUID, party_kind: PartyKind) -> None:
        party = self.session.get(PartyModel, party_id)
        if (
            party is None
            or party.vendor_id != vendor_id
            or party.party_kind != party_kind.value
        ):
            raise PartyNotFoundError(str(party_id), party_kind.value)

    def append(
        self,
        draft: TransactionDraft,
        actor_id: UUID,
        recurrence_source_id: UUID | None = None,
        occurrence_date: date | None = None,
    ) -> UUID:
        """
        Validate and persist a draft.

        Args:
            draft: The PENDING transaction.
            actor_id: Who is posting it.
            recurrence_source_id: Template id, for materialized occurrences.
            occurrence_date: Occurrence date, for materialized occurrences.

        Returns:
            The id of the new POSTED transaction.
        """
        clean = validate_draft(draft, tz=self.tz)

        if clean.customer_id is not None:
            self._resolve_party(clean.vendor_id, clean.customer_id, PartyKind.CUSTOMER)
        elif clean.supplier_id is not None:
            self._resolve_party(clean.vendor_id, clean.supplier_id, PartyKind.SUPPLIER)

        now = self.clock.now_utc()
        row = LedgerTransactionModel(
            vendor_id=clean.vendor_id,
            customer_id=clean.customer_id,
            supplier_id=clean.supplier_id,
            type=clean.type.value,
            amount=clean.amount,
            transaction_date=clean.transaction_date,
            category=clean.category.value,
            payment_method=clean.payment_method.value,
            description=clean.description,
            note=clean.note,
            is_recurring=clean.is_recurring,
            recurring_pattern=clean.recurring_pattern.value if clean.recurring_pattern else None,
            recurring_start_date=clean.recurring_start_date,
            recurring_end_date=clean.recurring_end_date,
            reference_type=clean.reference_type,
            reference_id=clean.reference_id,
            attachments=list(clean.attachments),
            exclude_from_balance=clean.exclude_from_balance,
            is_pos_sale=clean.is_pos_sale,
            posted_at=now,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
            recurrence_source_id=recurrence_source_id,
            occurrence_date=occurrence_date,
        )
        self.session.add(row)
        self.session.flush()

        with LogContext.bind(
            vendor_id=clean.vendor_id,
            party_id=clean.party_id,
            transaction_id=row.id,
            actor_id=actor_id,
        ):
            logger.info(
                "transaction_posted",
                extra={
                    "type": row.type,
                    "amount": str(row.amount),
                    "category": row.category,
                    "exclude_from_balance": row.exclude_from_balance,
                    "reference_type": row.reference_type,
                },
            )
        return row.id

    def get_row(self, vendor_id: UUID, transaction_id: UUID) -> LedgerTransactionModel:
        """ORM row for kernel services that amend metadata in place."""
        row = self.session.get(LedgerTransactionModel, transaction_id)
        if row is None or row.vendor_id != vendor_id:
            raise TransactionNotFoundError(str(transaction_id))
        return row

    def get(self, vendor_id: UUID, transaction_id: UUID) -> LedgerTransaction:
        """
        Raises:
            TransactionNotFoundError: If no such transaction exists for the vendor.
        """
        return self.get_row(vendor_id, transaction_id).to_dto()

    def list_for_vendor(self, vendor_id: UUID) -> list[LedgerTransaction]:
        """Every transaction of the vendor, any party or none."""
        stmt = (
            select(LedgerTransactionModel)
            .where(LedgerTransactionModel.vendor_id == vendor_id)
            .order_by(LedgerTransactionModel.transaction_date, LedgerTransactionModel.created_at)
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def list_for_party(self, vendor_id: UUID, party_id: UUID) -> list[LedgerTransaction]:
        """Every transaction of the vendor with one customer or supplier."""
        stmt = (
            select(LedgerTransactionModel)
            .where(LedgerTransactionModel.vendor_id == vendor_id)
            .where(
                or_(
                    LedgerTransactionModel.customer_id == party_id,
                    LedgerTransactionModel.supplier_id == party_id,
                )
            )
            .order_by(LedgerTransactionModel.transaction_date, LedgerTransactionModel.created_at)
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]
