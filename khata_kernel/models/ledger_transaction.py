"""
Module: khata_kernel.models.ledger_transaction
Responsibility: ORM persistence for posted ledger (khata) transactions.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Every row belongs to exactly one vendor (vendor_id NOT NULL).
    - customer_id and supplier_id are never both set (ck_ledger_single_party).
    - amount > 0 (ck_ledger_amount_positive).
    - Financial columns are frozen once the row exists; only note,
      attachments and the updated_* audit columns may change
      (LEDGER_MUTABLE_AFTER_POST, enforced by db/immutability.py).
    - (recurrence_source_id, occurrence_date) is unique, so two callers
      materializing the same recurring occurrence cannot both succeed.

Failure modes:
    - IntegrityError on a duplicate materialized occurrence.
    - ImmutableRecordError from the ORM listeners on any UPDATE of a frozen
      column or any DELETE.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from khata_kernel.db.base import TrackedBase, UUIDString
from khata_kernel.domain.clock import ensure_aware
from khata_kernel.domain.dtos import LedgerTransaction
from khata_kernel.domain.values import (
    PaymentMethod,
    RecurringPattern,
    TransactionCategory,
    TransactionType,
)

# Columns that may change on a posted row
LEDGER_MUTABLE_AFTER_POST = frozenset({
    "note",
    "attachments",
    "updated_at",
    "updated_by_id",
})


class LedgerTransactionModel(TrackedBase):
    """A single money-in or money-out fact between a vendor and a party."""

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_amount_positive"),
        CheckConstraint(
            "customer_id IS NULL OR supplier_id IS NULL",
            name="ck_ledger_single_party",
        ),
        UniqueConstraint(
            "recurrence_source_id",
            "occurrence_date",
            name="uq_ledger_recurrence_occurrence",
        ),
        Index("idx_ledger_vendor_date", "vendor_id", "transaction_date"),
        Index("idx_ledger_customer", "vendor_id", "customer_id"),
        Index("idx_ledger_supplier", "vendor_id", "supplier_id"),
        Index("idx_ledger_reference", "reference_type", "reference_id"),
    )

    vendor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    type: Mapped[str] = mapped_column(String(3), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Internal only, never shown to the counterparty
    note: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_pattern: Mapped[str | None] = mapped_column(String(20), nullable=True)
    recurring_start_date: Mapped[date | None] = mapped_column(nullable=True)
    recurring_end_date: Mapped[date | None] = mapped_column(nullable=True)

    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    attachments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    exclude_from_balance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_pos_sale: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    posted_at: Mapped[datetime] = mapped_column(nullable=False)

    # Materialized recurring occurrences point back at their template
    recurrence_source_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    occurrence_date: Mapped[date | None] = mapped_column(nullable=True)

    def to_dto(self) -> LedgerTransaction:
        return LedgerTransaction(
            id=self.id,
            vendor_id=self.vendor_id,
            type=TransactionType(self.type),
            amount=Decimal(self.amount),
            transaction_date=ensure_aware(self.transaction_date),
            category=TransactionCategory(self.category),
            payment_method=PaymentMethod(self.payment_method),
            customer_id=self.customer_id,
            supplier_id=self.supplier_id,
            description=self.description,
            note=self.note,
            is_recurring=self.is_recurring,
            recurring_pattern=RecurringPattern(self.recurring_pattern) if self.recurring_pattern else None,
            recurring_start_date=self.recurring_start_date,
            recurring_end_date=self.recurring_end_date,
            reference_type=self.reference_type,
            reference_id=self.reference_id,
            attachments=tuple(self.attachments or ()),
            exclude_from_balance=self.exclude_from_balance,
            is_pos_sale=self.is_pos_sale,
            created_at=ensure_aware(self.created_at),
            updated_at=ensure_aware(self.updated_at),
            posted_at=ensure_aware(self.posted_at),
            created_by_id=self.created_by_id,
            updated_by_id=self.updated_by_id,
            recurrence_source_id=self.recurrence_source_id,
            occurrence_date=self.occurrence_date,
        )

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.id}: {self.type} {self.amount}>"
