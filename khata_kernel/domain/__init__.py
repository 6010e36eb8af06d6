"""
Pure domain layer.

Value enums, DTOs, the clock abstraction and draft validation, with NO
dependencies on the ORM, the session, or any other I/O.
"""

from khata_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from khata_kernel.domain.dtos import LedgerTransaction, PartyInfo, TransactionDraft
from khata_kernel.domain.validation import validate_draft
from khata_kernel.domain.values import (
    BalancePosition,
    PartyKind,
    PartyStatus,
    PaymentMethod,
    RecurringPattern,
    TransactionCategory,
    TransactionState,
    TransactionType,
)

__all__ = [
    "BalancePosition",
    "Clock",
    "DeterministicClock",
    "LedgerTransaction",
    "PartyInfo",
    "PartyKind",
    "PartyStatus",
    "PaymentMethod",
    "RecurringPattern",
    "SystemClock",
    "TransactionCategory",
    "TransactionDraft",
    "TransactionState",
    "TransactionType",
    "validate_draft",
]
