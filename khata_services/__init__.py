"""
khata_services -- orchestration over the ledger kernel and engines.

Responsibility:
    Stateful services that combine a database session, the clock and the
    active configuration with the pure engines: statements, recurrence
    materialization and POS checkout posting.

Architecture position:
    Dependency direction:
        khata_services/ -> khata_config/, khata_engines/, khata_kernel/  (allowed)
        khata_engines/  -> khata_services/                               (FORBIDDEN)
        khata_kernel/   -> khata_services/, khata_config/                (FORBIDDEN)
"""

from khata_services.pos_settlement import (
    PosCheckout,
    PosLineItem,
    PosSettlementResult,
    PosSettlementService,
)
from khata_services.bootstrap import bootstrap
from khata_services.recurrence_service import RecurrenceService
from khata_services.statement_service import (
    GENERAL_PARTY_NAME,
    Statement,
    StatementBucket,
    StatementEntry,
    StatementService,
)

__all__ = [
    "GENERAL_PARTY_NAME",
    "PosCheckout",
    "PosLineItem",
    "PosSettlementResult",
    "PosSettlementService",
    "RecurrenceService",
    "Statement",
    "StatementBucket",
    "StatementEntry",
    "StatementService",
    "bootstrap",
]
