"""
Module: khata_engines.balance
Responsibility:
    Derive the net balance between a vendor and one party (or the vendor
    as a whole) from a set of posted ledger transactions, and present it
    with the party kind's sign convention.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import khata_kernel domain values/DTOs and db.types.

Sign convention:
    Internally ``balance = total_in - total_out`` for every party kind.
    Presentation depends on who the counterparty is:

        party kind | balance < 0                | balance > 0
        -----------|----------------------------|-----------------------------
        customer   | customer owes the vendor   | vendor holds an advance
                   | "You will GET"             | "You will GIVE"
        supplier   | supplier owes the vendor   | vendor owes the supplier
                   | "You will GET"             | "You will GIVE"

    A zero balance is "Settled".

Invariants enforced:
    - Rows with exclude_from_balance never contribute to total_in,
      total_out or balance, whatever their type or amount.
    - transaction_count counts every row, excluded ones included.
    - Order independent: the fold is a pair of sums.
    - Decimal-only arithmetic.

Failure modes:
    - None.  An empty input yields all zeros.

Usage:
    calculator = BalanceCalculator()
    result = calculator.compute(transactions, party_kind=PartyKind.CUSTOMER)
    result.position        # BalancePosition.WILL_GET
    result.describe()      # "Customer will pay you ₹700"
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from khata_kernel.db.types import ZERO, round_money
from khata_kernel.domain.dtos import LedgerTransaction
from khata_kernel.domain.values import BalancePosition, PartyKind, TransactionType
from khata_engines.tracer import traced_engine

DEFAULT_CURRENCY_SYMBOL = "₹"


def format_amount(amount: Decimal, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """
    Format an amount in the Indian digit grouping style.

    The last three integer digits form one group, every group before it has
    two digits.  Paise are shown only when non-zero.

        format_amount(Decimal("120000"))   -> "₹1,20,000"
        format_amount(Decimal("-1234.5"))  -> "-₹1,234.50"
    """
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):.2f}".partition(".")

    head, tail = integer[:-3], integer[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    groups.append(tail)

    text = ",".join(groups)
    if fraction != "00":
        text = f"{text}.{fraction}"
    return f"{sign}{currency_symbol}{text}"


@dataclass(frozen=True)
class LedgerBalance:
    """
    Result of folding a transaction set.

    total_in / total_out / balance cover balance-bearing rows only.
    total_received / total_given are gross IN / OUT sums over every row,
    the "You Got" / "You Gave" display totals.
    """

    total_in: Decimal
    total_out: Decimal
    balance: Decimal
    transaction_count: int
    total_received: Decimal = ZERO
    total_given: Decimal = ZERO
    party_kind: PartyKind | None = None

    @property
    def position(self) -> BalancePosition:
        if self.balance < 0:
            return BalancePosition.WILL_GET
        if self.balance > 0:
            return BalancePosition.WILL_GIVE
        return BalancePosition.SETTLED

    @property
    def outstanding(self) -> Decimal:
        """Amount owed in either direction, always >= 0."""
        return abs(self.balance)

    def describe(self, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
        """Human phrase for the balance, e.g. "You will give supplier ₹6,000"."""
        position = self.position
        if position is BalancePosition.SETTLED:
            return position.label
        amount = format_amount(self.outstanding, currency_symbol)
        if self.party_kind is None:
            verb = "get" if position is BalancePosition.WILL_GET else "give"
            return f"You will {verb} {amount}"
        noun = self.party_kind.value
        if position is BalancePosition.WILL_GET:
            return f"{noun.capitalize()} will pay you {amount}"
        return f"You will give {noun} {amount}"

    def summarize(self) -> dict[str, Any]:
        """The list-transactions summary payload."""
        return {
            "totalGiven": self.total_given,
            "totalReceived": self.total_received,
            "balance": self.balance,
            "transactionCount": self.transaction_count,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalIn": self.total_in,
            "totalOut": self.total_out,
            "balance": self.balance,
            "transactionCount": self.transaction_count,
            "position": self.position.value,
            "positionLabel": self.position.label,
        }


class BalanceCalculator:
    """
    One calculator for every party kind; the kind only changes the
    presentation of the result, never the arithmetic.
    """

    @traced_engine("balance", "1.0", fingerprint_fields=("party_kind",))
    def compute(
        self,
        transactions: Iterable[LedgerTransaction],
        party_kind: PartyKind | None = None,
    ) -> LedgerBalance:
        total_in = ZERO
        total_out = ZERO
        gross_in = ZERO
        gross_out = ZERO
        count = 0

        for txn in transactions:
            count += 1
            is_in = TransactionType(txn.type) is TransactionType.IN
            if is_in:
                gross_in += txn.amount
            else:
                gross_out += txn.amount
            if txn.exclude_from_balance:
                continue
            if is_in:
                total_in += txn.amount
            else:
                total_out += txn.amount

        return LedgerBalance(
            total_in=total_in,
            total_out=total_out,
            balance=total_in - total_out,
            transaction_count=count,
            total_received=gross_in,
            total_given=gross_out,
            party_kind=PartyKind(party_kind) if party_kind is not None else None,
        )
