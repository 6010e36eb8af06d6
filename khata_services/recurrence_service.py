"""
RecurrenceService -- posts the due occurrences of recurring templates.

Responsibility:
    For every recurring template of a vendor, asks the RecurrenceExpander
    which dates up to today are due and not yet materialized, and posts
    each one as a new transaction linked to its template
    (recurrence_source_id, occurrence_date, reference_type="recurrence").

Architecture position:
    Services -- orchestration over the lifecycle guard, the ledger selector
    and the pure expander.

Concurrency:
    Safe to run concurrently for the same vendor.  The materialized-date
    set filters most duplicates; a duplicate that slips through a race
    violates uq_ledger_recurrence_occurrence, is rolled back inside its
    own SAVEPOINT and skipped.  No locks are taken.

Invariants enforced:
    - The template's own transaction date counts as materialized; the
      template is the first occurrence.
    - Occurrences are plain, non-recurring transactions; they never
      spawn further occurrences.

Failure modes:
    - A template that cannot be expanded or posted (e.g. bounds that are
      inverted in the vendor timezone) is logged as
      recurrence_template_failed and skipped; the other templates of the
      run are still materialized.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from khata_config.schema import KhataConfig
from khata_engines.recurrence import RecurrenceExpander
from khata_kernel.domain.clock import Clock, SystemClock, ensure_aware
from khata_kernel.domain.dtos import LedgerTransaction, TransactionDraft
from khata_kernel.domain.values import REFERENCE_RECURRENCE
from khata_kernel.exceptions import KhataError
from khata_kernel.logging_config import LogContext, get_logger
from khata_kernel.selectors.ledger_selector import LedgerSelector
from khata_kernel.services.transaction_store import TransactionStore

logger = get_logger("services.recurrence")


class RecurrenceService:
    """Materializes due recurring occurrences for a vendor."""

    def __init__(
        self,
        session: Session,
        config: KhataConfig,
        clock: Clock | None = None,
        store: TransactionStore | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._store = store or TransactionStore(session, self._clock, tz=config.tzinfo)
        self._selector = LedgerSelector(session)
        self._expander = RecurrenceExpander(max_occurrences=config.recurrence_max_occurrences)

    def _occurrence_draft(self, template: LedgerTransaction, day: date) -> TransactionDraft:
        local = ensure_aware(template.transaction_date).astimezone(self._config.tzinfo)
        when = datetime.combine(day, local.timetz())
        return TransactionDraft(
            vendor_id=template.vendor_id,
            type=template.type,
            amount=template.amount,
            transaction_date=when,
            category=template.category,
            payment_method=template.payment_method,
            customer_id=template.customer_id,
            supplier_id=template.supplier_id,
            description=template.description,
            reference_type=REFERENCE_RECURRENCE,
            reference_id=str(template.id),
            exclude_from_balance=template.exclude_from_balance,
            is_pos_sale=template.is_pos_sale,
        )

    def due_dates(self, template: LedgerTransaction, as_of: date | None = None) -> list[date]:
        """Occurrence dates of ``template`` that are due and not yet posted."""
        tz = self._config.tzinfo
        anchor = ensure_aware(template.transaction_date).astimezone(tz).date()
        start = template.recurring_start_date or anchor
        materialized = self._selector.materialized_dates(template.vendor_id, template.id)
        materialized.add(anchor)
        return self._expander.expand(
            pattern=template.recurring_pattern,
            start=start,
            as_of=as_of or self._clock.today(tz),
            end=template.recurring_end_date,
            materialized=materialized,
        )

    def materialize_due(self, vendor_id: UUID, actor_id: UUID) -> list[LedgerTransaction]:
        """
        Post every due occurrence of every recurring template of a vendor.

        Returns:
            The occurrences posted by this call, in template then date order.
        """
        posted: list[LedgerTransaction] = []
        failed = 0
        as_of = self._clock.today(self._config.tzinfo)

        for template in self._selector.recurring_templates(vendor_id):
            try:
                self._materialize_template(template, as_of, actor_id, posted)
            except KhataError as exc:
                failed += 1
                with LogContext.bind(vendor_id=vendor_id, transaction_id=template.id):
                    logger.warning(
                        "recurrence_template_failed",
                        extra={"error_code": exc.code, "error": str(exc)},
                    )

        logger.info(
            "recurrence_run_completed",
            extra={
                "vendor_id": str(vendor_id),
                "posted_count": len(posted),
                "failed_templates": failed,
            },
        )
        return posted

    def _materialize_template(
        self,
        template: LedgerTransaction,
        as_of: date,
        actor_id: UUID,
        posted: list[LedgerTransaction],
    ) -> None:
        vendor_id = template.vendor_id
        for day in self.due_dates(template, as_of):
            draft = self._occurrence_draft(template, day)
            try:
                with self._session.begin_nested():
                    new_id = self._store.append(
                        draft,
                        actor_id,
                        recurrence_source_id=template.id,
                        occurrence_date=day,
                    )
            except IntegrityError:
                with LogContext.bind(vendor_id=vendor_id, transaction_id=template.id):
                    logger.info(
                        "occurrence_already_materialized",
                        extra={"occurrence_date": day.isoformat()},
                    )
                continue

            occurrence = self._store.get(vendor_id, new_id)
            posted.append(occurrence)
            with LogContext.bind(vendor_id=vendor_id, transaction_id=new_id):
                logger.info(
                    "occurrence_materialized",
                    extra={
                        "template_id": str(template.id),
                        "occurrence_date": day.isoformat(),
                    },
                )
