"""Selectors for the ledger core (read side)."""

from khata_kernel.selectors.ledger_selector import LedgerFilter, LedgerSelector

__all__ = [
    "LedgerFilter",
    "LedgerSelector",
]
