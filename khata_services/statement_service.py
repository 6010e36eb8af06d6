"""
StatementService -- party statements and vendor-wide ledger summaries.

Responsibility:
    Reads posted transactions through the LedgerSelector, folds them with
    the BalanceCalculator and groups them with the DateBucketAggregator.
    Nothing is stored; every statement is recomputed from the rows.

Architecture position:
    Services -- orchestration over kernel selectors and pure engines.
    The only layer that combines a session, the clock and configuration.

Invariants enforced:
    - Balances are derived on read, never persisted.
    - Transactions are listed newest first; buckets keep that order.
    - A transaction with no party is shown under the name "General".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from khata_config.schema import KhataConfig
from khata_engines.balance import BalanceCalculator, LedgerBalance
from khata_engines.buckets import DateBucketAggregator
from khata_kernel.domain.clock import Clock, SystemClock
from khata_kernel.domain.dtos import LedgerTransaction, PartyInfo
from khata_kernel.domain.values import PartyKind
from khata_kernel.logging_config import LogContext, get_logger
from khata_kernel.selectors.ledger_selector import LedgerFilter, LedgerSelector
from khata_kernel.services.party_service import PartyService

logger = get_logger("services.statement")

GENERAL_PARTY_NAME = "General"


@dataclass(frozen=True)
class StatementEntry:
    """One statement line: the transaction and who it was with."""

    transaction: LedgerTransaction
    party_name: str

    def to_dict(self) -> dict[str, Any]:
        data = self.transaction.to_dict()
        data["partyName"] = self.party_name
        data["paymentMethodLabel"] = self.transaction.payment_method.display_name
        return data


@dataclass(frozen=True)
class StatementBucket:
    label: str
    entries: tuple[StatementEntry, ...]


@dataclass(frozen=True)
class Statement:
    """
    A computed statement for one party or for the whole vendor.

    ``party`` is None for vendor-wide summaries.
    """

    vendor_id: UUID
    party: PartyInfo | None
    balance: LedgerBalance
    description: str
    buckets: tuple[StatementBucket, ...]

    @property
    def summary(self) -> dict[str, Any]:
        return self.balance.summarize()

    @property
    def entries(self) -> list[StatementEntry]:
        return [entry for bucket in self.buckets for entry in bucket.entries]

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendorId": str(self.vendor_id),
            "partyId": str(self.party.id) if self.party else None,
            "partyName": self.party.name if self.party else None,
            "summary": self.summary,
            "position": self.balance.position.value,
            "positionLabel": self.balance.position.label,
            "description": self.description,
            "groups": [
                {"label": b.label, "transactions": [e.to_dict() for e in b.entries]}
                for b in self.buckets
            ],
        }


class StatementService:
    """
    Builds statements for a vendor's parties and for the vendor as a whole.

    Non-goals:
        - Does NOT write anything; safe on a read-only session.
    """

    def __init__(
        self,
        session: Session,
        config: KhataConfig,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._selector = LedgerSelector(session)
        self._parties = PartyService(session, self._clock)
        self._calculator = BalanceCalculator()
        self._aggregator = DateBucketAggregator(
            tz=config.tzinfo,
            week_starts_on=config.week_start_index,
        )

    def _bucket(
        self,
        transactions: list[LedgerTransaction],
        names: dict[UUID, str],
    ) -> tuple[StatementBucket, ...]:
        groups = self._aggregator.group(transactions=transactions, now=self._clock.now())
        return tuple(
            StatementBucket(
                label=label,
                entries=tuple(
                    StatementEntry(
                        transaction=txn,
                        party_name=names.get(txn.party_id, GENERAL_PARTY_NAME),
                    )
                    for txn in txns
                ),
            )
            for label, txns in groups.items()
        )

    def party_statement(
        self,
        vendor_id: UUID,
        party_id: UUID,
        party_kind: PartyKind,
        filters: LedgerFilter | None = None,
    ) -> Statement:
        """
        Statement for one customer or supplier.

        Raises:
            PartyNotFoundError: If the party does not exist for the vendor
                as ``party_kind``.
        """
        party = self._parties.get(vendor_id, party_id, party_kind)
        base = filters or LedgerFilter()
        scoped = LedgerFilter(
            party_id=party.id,
            type=base.type,
            category=base.category,
            payment_method=base.payment_method,
            start_date=base.start_date,
            end_date=base.end_date,
        )
        transactions = self._selector.list_transactions(vendor_id, scoped, tz=self._config.tzinfo)
        balance = self._calculator.compute(transactions=transactions, party_kind=party.party_kind)

        with LogContext.bind(vendor_id=vendor_id, party_id=party.id):
            logger.info(
                "party_statement_built",
                extra={
                    "party_kind": party.party_kind.value,
                    "transaction_count": balance.transaction_count,
                    "balance": str(balance.balance),
                },
            )

        return Statement(
            vendor_id=vendor_id,
            party=party,
            balance=balance,
            description=balance.describe(self._config.currency_symbol),
            buckets=self._bucket(transactions, {party.id: party.name}),
        )

    def vendor_summary(
        self,
        vendor_id: UUID,
        filters: LedgerFilter | None = None,
    ) -> Statement:
        """Every transaction of the vendor, optionally filtered."""
        transactions = self._selector.list_transactions(vendor_id, filters, tz=self._config.tzinfo)
        balance = self._calculator.compute(transactions=transactions, party_kind=None)
        party_ids = {t.party_id for t in transactions if t.party_id is not None}
        names = self._parties.names_for(vendor_id, party_ids)

        with LogContext.bind(vendor_id=vendor_id):
            logger.info(
                "vendor_summary_built",
                extra={
                    "transaction_count": balance.transaction_count,
                    "balance": str(balance.balance),
                },
            )

        return Statement(
            vendor_id=vendor_id,
            party=None,
            balance=balance,
            description=balance.describe(self._config.currency_symbol),
            buckets=self._bucket(transactions, names),
        )
