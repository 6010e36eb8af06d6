"""
Module: khata_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: filtered transaction listings for
    a vendor or one of its parties, recurring templates, and the set of
    occurrence dates already materialized for a template.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every query is scoped by vendor_id.
    - No stored balances; callers fold the returned rows with the balance
      engine.
    - Date filters are inclusive calendar days in the caller's timezone.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from uuid import UUID

from sqlalchemy import or_, select

from khata_kernel.domain.dtos import LedgerTransaction
from khata_kernel.domain.values import PaymentMethod, TransactionCategory, TransactionType
from khata_kernel.models.ledger_transaction import LedgerTransactionModel
from khata_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerFilter:
    """Optional narrowing of a ledger listing.  None means no constraint."""

    party_id: UUID | None = None
    type: TransactionType | None = None
    category: TransactionCategory | None = None
    payment_method: PaymentMethod | None = None
    start_date: date | None = None
    end_date: date | None = None


def _day_start_utc(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


class LedgerSelector(BaseSelector[LedgerTransactionModel]):
    """Read-only access to posted ledger transactions."""

    def list_transactions(
        self,
        vendor_id: UUID,
        filters: LedgerFilter | None = None,
        tz: tzinfo = timezone.utc,
    ) -> list[LedgerTransaction]:
        """
        List a vendor's transactions, newest first.

        Args:
            vendor_id: Owning vendor.
            filters: Optional party/type/category/payment method/date range.
            tz: Timezone in which start_date/end_date calendar days are read.
        """
        f = filters or LedgerFilter()
        model = LedgerTransactionModel
        stmt = select(model).where(model.vendor_id == vendor_id)

        if f.party_id is not None:
            stmt = stmt.where(or_(model.customer_id == f.party_id, model.supplier_id == f.party_id))
        if f.type is not None:
            stmt = stmt.where(model.type == TransactionType(f.type).value)
        if f.category is not None:
            stmt = stmt.where(model.category == TransactionCategory(f.category).value)
        if f.payment_method is not None:
            stmt = stmt.where(model.payment_method == PaymentMethod(f.payment_method).value)
        if f.start_date is not None:
            stmt = stmt.where(model.transaction_date >= _day_start_utc(f.start_date, tz))
        if f.end_date is not None:
            stmt = stmt.where(
                model.transaction_date < _day_start_utc(f.end_date + timedelta(days=1), tz)
            )

        stmt = stmt.order_by(model.transaction_date.desc(), model.created_at.desc())
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def recurring_templates(self, vendor_id: UUID) -> list[LedgerTransaction]:
        """Transactions flagged recurring that are templates, not occurrences."""
        model = LedgerTransactionModel
        stmt = (
            select(model)
            .where(model.vendor_id == vendor_id)
            .where(model.is_recurring.is_(True))
            .where(model.recurrence_source_id.is_(None))
            .order_by(model.transaction_date)
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def materialized_dates(self, vendor_id: UUID, template_id: UUID) -> set[date]:
        model = LedgerTransactionModel
        stmt = (
            select(model.occurrence_date)
            .where(model.vendor_id == vendor_id)
            .where(model.recurrence_source_id == template_id)
        )
        return {d for d in self.session.scalars(stmt) if d is not None}
