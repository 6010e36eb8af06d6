"""Services for the ledger core (write side)."""

from khata_kernel.services.lifecycle_guard import CorrectionResult, LifecycleGuard
from khata_kernel.services.party_service import PartyService
from khata_kernel.services.transaction_store import TransactionStore

__all__ = [
    "CorrectionResult",
    "LifecycleGuard",
    "PartyService",
    "TransactionStore",
]
