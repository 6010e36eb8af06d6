"""
Ledger value enumerations.

Every enum is a ``str`` subclass so members compare equal to, and persist
as, their wire values ("in", "product_sale", ...).
"""

from enum import Enum


class TransactionType(str, Enum):
    """Direction of money relative to the vendor.

    IN  -- money (or credit) received by the vendor.
    OUT -- money (or credit) given by the vendor.
    """

    IN = "in"
    OUT = "out"

    @property
    def opposite(self) -> "TransactionType":
        return TransactionType.OUT if self is TransactionType.IN else TransactionType.IN


class TransactionCategory(str, Enum):
    PRODUCT_SALE = "product_sale"
    SERVICE = "service"
    EXPENSE = "expense"
    ADVANCE = "advance"
    REFUND = "refund"
    SUBSCRIPTION = "subscription"
    OTHER = "other"


class PaymentMethod(str, Enum):
    """How the money moved.  CREDIT marks an unpaid POS due."""

    CASH = "cash"
    BANK = "bank"
    UPI = "upi"
    CARD = "card"
    OTHER = "other"
    CREDIT = "credit"

    @property
    def display_name(self) -> str:
        if self is PaymentMethod.CREDIT:
            return "Due"
        if self is PaymentMethod.UPI:
            return "UPI"
        return self.value.capitalize()


class RecurringPattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PartyKind(str, Enum):
    """Counterparty classification; drives the balance presentation."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class PartyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TransactionState(str, Enum):
    """Lifecycle of a ledger transaction.

    PENDING -- an in-memory draft, not yet validated or persisted.
    POSTED  -- persisted and permanent.  There is no void or deleted state;
               a reversal is always a new POSTED transaction.
    """

    PENDING = "pending"
    POSTED = "posted"


class BalancePosition(str, Enum):
    """Who owes whom, from the vendor's point of view."""

    WILL_GET = "will_get"
    WILL_GIVE = "will_give"
    SETTLED = "settled"

    @property
    def label(self) -> str:
        return {
            BalancePosition.WILL_GET: "You will GET",
            BalancePosition.WILL_GIVE: "You will GIVE",
            BalancePosition.SETTLED: "Settled",
        }[self]


# Reference types written by the ledger core itself
REFERENCE_CORRECTION = "correction"
REFERENCE_REPLACEMENT = "replacement"
REFERENCE_RECURRENCE = "recurrence"
