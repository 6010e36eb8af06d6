"""
PosSettlementService -- ledger side of a point-of-sale checkout.

Responsibility:
    Turns a completed POS bill into ledger rows for the customer:

        paid part  -> type=in,  product_sale, exclude_from_balance=True
                      (cash-and-carry exchange, not credit)
        due part   -> type=out, product_sale, payment_method=credit,
                      counted in the balance (the customer now owes it)

    Both rows are flagged is_pos_sale and carry the order (or bill)
    reference.  A walk-in sale (no customer) records nothing.

Architecture position:
    Services -- orchestration over the lifecycle guard.  The POS module
    itself is an external collaborator that only hands over the bill.

Failure modes:
    - ValidationError: negative amounts, a paid amount above the bill
      total, a non-positive total.
    - PartyNotFoundError: the customer does not exist for the vendor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from khata_kernel.domain.clock import Clock, SystemClock
from khata_kernel.domain.dtos import LedgerTransaction, TransactionDraft
from khata_kernel.domain.validation import coerce_amount
from khata_kernel.domain.values import PaymentMethod, TransactionCategory, TransactionType
from khata_kernel.exceptions import ValidationError
from khata_kernel.logging_config import LogContext, get_logger
from khata_kernel.services.lifecycle_guard import LifecycleGuard

logger = get_logger("services.pos_settlement")


@dataclass(frozen=True)
class PosLineItem:
    name: str
    quantity: int = 1


@dataclass(frozen=True)
class PosCheckout:
    """A completed POS bill as handed over by the POS module."""

    vendor_id: UUID
    bill_id: str
    bill_number: str
    grand_total: Decimal
    amount_paid: Decimal
    customer_id: UUID | None = None
    order_id: str | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    items: tuple[PosLineItem, ...] = field(default_factory=tuple)
    transaction_date: datetime | None = None

    @property
    def is_walk_in(self) -> bool:
        return self.customer_id is None

    @property
    def reference(self) -> tuple[str, str]:
        """(reference_type, reference_id): the order when one exists, else the bill."""
        if self.order_id:
            return "order", self.order_id
        return "bill", self.bill_id

    def items_text(self) -> str:
        return ", ".join(f"{item.quantity}x {item.name}" for item in self.items)


@dataclass(frozen=True)
class PosSettlementResult:
    paid_entry: LedgerTransaction | None = None
    due_entry: LedgerTransaction | None = None

    @property
    def entries(self) -> list[LedgerTransaction]:
        return [e for e in (self.paid_entry, self.due_entry) if e is not None]


def _non_negative(value: Decimal | int | str, field_name: str) -> Decimal:
    if isinstance(value, (bool, float)):
        raise ValidationError(field_name, "must be a Decimal, int or numeric string")
    amount = Decimal(str(value))
    if amount < 0:
        raise ValidationError(field_name, f"cannot be negative, got {amount}")
    return amount if amount == 0 else coerce_amount(amount)


class PosSettlementService:
    """Records the ledger rows for POS checkouts."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        guard: LifecycleGuard | None = None,
    ):
        self._clock = clock or SystemClock()
        self._guard = guard or LifecycleGuard(session, self._clock)

    def record_checkout(self, checkout: PosCheckout, actor_id: UUID) -> PosSettlementResult:
        """
        Post the paid and/or due rows for a checkout.

        Returns:
            The posted rows.  Both are None for a walk-in sale.
        """
        total = coerce_amount(checkout.grand_total)
        paid = _non_negative(checkout.amount_paid, "amount_paid")
        if paid > total:
            raise ValidationError(
                "amount_paid",
                f"{paid} exceeds the bill total {total}",
            )

        if checkout.is_walk_in:
            logger.info(
                "pos_walk_in_skipped",
                extra={"vendor_id": str(checkout.vendor_id), "bill_number": checkout.bill_number},
            )
            return PosSettlementResult()

        reference_type, reference_id = checkout.reference
        when = checkout.transaction_date or self._clock.now_utc()
        items = checkout.items_text() or None

        paid_entry = None
        if paid > 0:
            paid_entry = self._guard.create(
                TransactionDraft(
                    vendor_id=checkout.vendor_id,
                    customer_id=checkout.customer_id,
                    type=TransactionType.IN,
                    amount=paid,
                    transaction_date=when,
                    category=TransactionCategory.PRODUCT_SALE,
                    payment_method=checkout.payment_method,
                    description=f"POS Sale - Bill {checkout.bill_number}",
                    note=items,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    exclude_from_balance=True,
                    is_pos_sale=True,
                ),
                actor_id,
            )

        due_entry = None
        due = total - paid
        if due > 0:
            pending = f"Pending payment: {due:.2f}"
            due_entry = self._guard.create(
                TransactionDraft(
                    vendor_id=checkout.vendor_id,
                    customer_id=checkout.customer_id,
                    type=TransactionType.OUT,
                    amount=due,
                    transaction_date=when,
                    category=TransactionCategory.PRODUCT_SALE,
                    payment_method=PaymentMethod.CREDIT,
                    description=f"Credit Due - Bill {checkout.bill_number}",
                    note=f"{pending} ({items})" if items else pending,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    exclude_from_balance=False,
                    is_pos_sale=True,
                ),
                actor_id,
            )

        with LogContext.bind(vendor_id=checkout.vendor_id, party_id=checkout.customer_id, actor_id=actor_id):
            logger.info(
                "pos_checkout_recorded",
                extra={
                    "bill_number": checkout.bill_number,
                    "grand_total": str(total),
                    "amount_paid": str(paid),
                    "amount_due": str(due),
                },
            )
        return PosSettlementResult(paid_entry=paid_entry, due_entry=due_entry)
