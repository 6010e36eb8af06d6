"""
Module: khata_engines
Responsibility:
    Re-exports the pure calculation engines: balance, recurrence expansion
    and statement date buckets.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import khata_kernel domain values/DTOs, db.types and
    logging_config.  MUST NOT import khata_services.

Invariants enforced:
    - Engines NEVER read a clock.  "now" / "as_of" are explicit arguments.
    - Decimal-only arithmetic for amounts.
    - Identical inputs always produce identical outputs.
"""

from khata_engines.balance import (
    BalanceCalculator,
    LedgerBalance,
    format_amount,
)
from khata_engines.buckets import (
    MONDAY,
    SUNDAY,
    WEEK_STARTS,
    DateBucketAggregator,
    week_start,
)
from khata_engines.recurrence import RecurrenceExpander, add_months, occurrence
from khata_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "BalanceCalculator",
    "DateBucketAggregator",
    "LedgerBalance",
    "MONDAY",
    "RecurrenceExpander",
    "SUNDAY",
    "WEEK_STARTS",
    "add_months",
    "compute_input_fingerprint",
    "format_amount",
    "occurrence",
    "traced_engine",
    "week_start",
]
