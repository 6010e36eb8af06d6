"""
Ledger DTOs -- immutable value objects passed between layers.

Responsibility:
    ``TransactionDraft`` is a PENDING transaction: what a caller submits.
    ``LedgerTransaction`` is a POSTED transaction: what the store returns.
    ``PartyInfo`` is a read-only view of a customer or supplier.

Architecture position:
    Kernel > Domain -- pure, no ORM or session imports.  Services and
    selectors convert ORM rows to these DTOs before returning them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from khata_kernel.domain.values import (
    PartyKind,
    PartyStatus,
    PaymentMethod,
    RecurringPattern,
    TransactionCategory,
    TransactionState,
    TransactionType,
)
from khata_kernel.exceptions import ValidationError

# Wire (camelCase) name -> draft attribute
_WIRE_FIELDS: dict[str, str] = {
    "vendorId": "vendor_id",
    "type": "type",
    "amount": "amount",
    "transactionDate": "transaction_date",
    "category": "category",
    "paymentMethod": "payment_method",
    "customerId": "customer_id",
    "supplierId": "supplier_id",
    "description": "description",
    "note": "note",
    "isRecurring": "is_recurring",
    "recurringPattern": "recurring_pattern",
    "recurringStartDate": "recurring_start_date",
    "recurringEndDate": "recurring_end_date",
    "referenceType": "reference_type",
    "referenceId": "reference_id",
    "attachments": "attachments",
    "excludeFromBalance": "exclude_from_balance",
    "isPOSSale": "is_pos_sale",
}

_REQUIRED_FIELDS = ("vendor_id", "type", "amount", "transaction_date")


def attribute_name(key: str) -> str:
    """Map a camelCase wire key to its attribute name; other keys pass through."""
    return _WIRE_FIELDS.get(key, key)


@dataclass(frozen=True)
class TransactionDraft:
    """
    A ledger transaction in the PENDING state.

    Fields may still hold raw wire values (strings, ints); the store's
    validation normalizes them into enums, ``Decimal`` and aware datetimes
    before anything is persisted.
    """

    vendor_id: UUID
    type: TransactionType | str
    amount: Decimal | int | str
    transaction_date: datetime
    category: TransactionCategory | str = TransactionCategory.OTHER
    payment_method: PaymentMethod | str = PaymentMethod.CASH
    customer_id: UUID | None = None
    supplier_id: UUID | None = None
    description: str | None = None
    note: str | None = None
    is_recurring: bool = False
    recurring_pattern: RecurringPattern | str | None = None
    recurring_start_date: date | None = None
    recurring_end_date: date | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    attachments: tuple[str, ...] = ()
    exclude_from_balance: bool = False
    is_pos_sale: bool = False

    @property
    def state(self) -> TransactionState:
        return TransactionState.PENDING

    @property
    def party_id(self) -> UUID | None:
        return self.customer_id or self.supplier_id

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> TransactionDraft:
        """
        Build a draft from a create-transaction payload.

        Accepts camelCase wire keys or snake_case attribute names.  Server
        assigned fields (id, createdAt, updatedAt) are ignored.

        Raises:
            ValidationError: If vendorId, type, amount or transactionDate
                is missing.
        """
        kwargs: dict[str, Any] = {}
        attr_names = set(_WIRE_FIELDS.values())
        for key, value in payload.items():
            name = attribute_name(key)
            if name in attr_names:
                kwargs[name] = value
        for name in _REQUIRED_FIELDS:
            if kwargs.get(name) in (None, ""):
                raise ValidationError(name, "is required")
        if "attachments" in kwargs and kwargs["attachments"] is not None:
            kwargs["attachments"] = tuple(kwargs["attachments"])
        return cls(**kwargs)


@dataclass(frozen=True)
class LedgerTransaction:
    """A POSTED ledger transaction.  Immutable for its whole life."""

    id: UUID
    vendor_id: UUID
    type: TransactionType
    amount: Decimal
    transaction_date: datetime
    category: TransactionCategory
    payment_method: PaymentMethod
    customer_id: UUID | None
    supplier_id: UUID | None
    description: str | None
    note: str | None
    is_recurring: bool
    recurring_pattern: RecurringPattern | None
    recurring_start_date: date | None
    recurring_end_date: date | None
    reference_type: str | None
    reference_id: str | None
    attachments: tuple[str, ...]
    exclude_from_balance: bool
    is_pos_sale: bool
    created_at: datetime
    updated_at: datetime
    posted_at: datetime
    created_by_id: UUID
    updated_by_id: UUID | None = None
    recurrence_source_id: UUID | None = None
    occurrence_date: date | None = None

    @property
    def state(self) -> TransactionState:
        return TransactionState.POSTED

    @property
    def party_id(self) -> UUID | None:
        return self.customer_id or self.supplier_id

    @property
    def party_kind(self) -> PartyKind | None:
        if self.customer_id is not None:
            return PartyKind.CUSTOMER
        if self.supplier_id is not None:
            return PartyKind.SUPPLIER
        return None

    @property
    def is_general(self) -> bool:
        """Not tied to any customer or supplier."""
        return self.party_id is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys of the wire payload."""

        def _opt(v: Any) -> Any:
            return str(v) if v is not None else None

        return {
            "id": str(self.id),
            "vendorId": str(self.vendor_id),
            "customerId": _opt(self.customer_id),
            "supplierId": _opt(self.supplier_id),
            "type": self.type.value,
            "amount": str(self.amount),
            "transactionDate": self.transaction_date.isoformat(),
            "category": self.category.value,
            "paymentMethod": self.payment_method.value,
            "description": self.description,
            "note": self.note,
            "isRecurring": self.is_recurring,
            "recurringPattern": self.recurring_pattern.value if self.recurring_pattern else None,
            "recurringStartDate": self.recurring_start_date.isoformat() if self.recurring_start_date else None,
            "recurringEndDate": self.recurring_end_date.isoformat() if self.recurring_end_date else None,
            "referenceType": self.reference_type,
            "referenceId": self.reference_id,
            "attachments": list(self.attachments),
            "excludeFromBalance": self.exclude_from_balance,
            "isPOSSale": self.is_pos_sale,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class PartyInfo:
    """Read-only view of a vendor's customer or supplier."""

    id: UUID
    vendor_id: UUID
    party_kind: PartyKind
    name: str
    phone: str | None = None
    email: str | None = None
    status: PartyStatus = PartyStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == PartyStatus.ACTIVE
