"""ORM models.  Importing this package registers every table on Base.metadata."""

from khata_kernel.models.ledger_transaction import (
    LEDGER_MUTABLE_AFTER_POST,
    LedgerTransactionModel,
)
from khata_kernel.models.party import PartyModel

__all__ = [
    "LEDGER_MUTABLE_AFTER_POST",
    "LedgerTransactionModel",
    "PartyModel",
]
