"""
Draft validation -- the admission check between PENDING and POSTED.

Responsibility:
    ``validate_draft`` checks every ledger invariant on a
    ``TransactionDraft`` and returns a normalized copy (enums, ``Decimal``
    amounts, timezone-aware datetimes, ``date`` bounds).  Nothing is ever
    repaired: an invalid field raises ``ValidationError`` naming it.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Party existence is checked by the
    store, which owns the session.

Invariants enforced:
    - amount > 0, at most two fractional digits, never a float.
    - type is IN or OUT.
    - at most one of customer_id / supplier_id (exactly one when the caller
      asks for a party-scoped transaction).
    - is_recurring implies recurring_pattern.
    - recurring_end_date >= recurring_start_date (start defaults to the
      transaction date in the vendor timezone).
"""

from dataclasses import replace
from datetime import date, datetime, time, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from khata_kernel.db.types import has_excess_precision
from khata_kernel.domain.dtos import TransactionDraft
from khata_kernel.domain.values import (
    PaymentMethod,
    RecurringPattern,
    TransactionCategory,
    TransactionType,
)
from khata_kernel.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: type[E], value: Any, field: str) -> E:
    """Map a raw wire value onto ``enum_cls`` or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(field, f"{value!r} is not one of: {allowed}") from None


def coerce_uuid(value: Any, field: str) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(field, f"{value!r} is not a valid id") from None


def coerce_amount(value: Any) -> Decimal:
    """
    Parse a ledger amount.

    Floats and bools are refused outright; amounts must arrive as Decimal,
    int, or a numeric string.
    """
    if isinstance(value, (bool, float)) or value is None:
        raise ValidationError("amount", f"must be a Decimal, int or numeric string, got {type(value).__name__}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("amount", f"{value!r} is not a number") from None
    if not amount.is_finite():
        raise ValidationError("amount", "must be finite")
    if amount <= 0:
        raise ValidationError("amount", f"must be greater than zero, got {amount}")
    if has_excess_precision(amount):
        raise ValidationError("amount", f"{amount} has more than two decimal places")
    return amount


def coerce_datetime(value: Any, field: str) -> datetime:
    """Accept an aware/naive datetime, a date, or an ISO string; return aware UTC."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(field, f"{value!r} is not an ISO date-time") from None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise ValidationError(field, "is required")


def coerce_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            raise ValidationError(field, f"{value!r} is not an ISO date") from None
    raise ValidationError(field, f"{value!r} is not a date")


def check_recurrence_bounds(start: date, end: date | None) -> None:
    if end is not None and end < start:
        raise ValidationError(
            "recurring_end_date",
            f"{end.isoformat()} is before recurring_start_date {start.isoformat()}",
        )


def validate_draft(
    draft: TransactionDraft,
    require_party: bool = False,
    tz: tzinfo = timezone.utc,
) -> TransactionDraft:
    """
    Validate and normalize a PENDING transaction.

    Args:
        draft: The submitted draft.
        require_party: True for party-scoped entry points, where a "general"
            transaction (no customer, no supplier) is not acceptable.
        tz: Vendor timezone.  A recurring draft without an explicit start
            date starts on the local calendar day of its transaction date.

    Returns:
        A normalized copy of the draft.

    Raises:
        ValidationError: On the first violated invariant.
    """
    vendor_id = coerce_uuid(draft.vendor_id, "vendor_id")
    if vendor_id is None:
        raise ValidationError("vendor_id", "is required")

    customer_id = coerce_uuid(draft.customer_id, "customer_id")
    supplier_id = coerce_uuid(draft.supplier_id, "supplier_id")
    if customer_id is not None and supplier_id is not None:
        raise ValidationError("party", "customer_id and supplier_id are mutually exclusive")
    if require_party and customer_id is None and supplier_id is None:
        raise ValidationError("party", "a customer_id or supplier_id is required")

    txn_type = coerce_enum(TransactionType, draft.type, "type")
    amount = coerce_amount(draft.amount)
    transaction_date = coerce_datetime(draft.transaction_date, "transaction_date")
    category = coerce_enum(TransactionCategory, draft.category, "category")
    payment_method = coerce_enum(PaymentMethod, draft.payment_method, "payment_method")

    pattern = None
    if draft.recurring_pattern is not None:
        pattern = coerce_enum(RecurringPattern, draft.recurring_pattern, "recurring_pattern")
    if draft.is_recurring and pattern is None:
        raise ValidationError("recurring_pattern", "is required when is_recurring is true")

    start = coerce_date(draft.recurring_start_date, "recurring_start_date")
    end = coerce_date(draft.recurring_end_date, "recurring_end_date")
    if draft.is_recurring:
        check_recurrence_bounds(start or transaction_date.astimezone(tz).date(), end)

    attachments = tuple(str(a) for a in (draft.attachments or ()))

    return replace(
        draft,
        vendor_id=vendor_id,
        customer_id=customer_id,
        supplier_id=supplier_id,
        type=txn_type,
        amount=amount,
        transaction_date=transaction_date,
        category=category,
        payment_method=payment_method,
        is_recurring=bool(draft.is_recurring),
        recurring_pattern=pattern,
        recurring_start_date=start,
        recurring_end_date=end,
        attachments=attachments,
        exclude_from_balance=bool(draft.exclude_from_balance),
        is_pos_sale=bool(draft.is_pos_sale),
    )
