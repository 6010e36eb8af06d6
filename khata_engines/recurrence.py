"""
Module: khata_engines.recurrence
Responsibility:
    Expand a recurring transaction template into the occurrence dates that
    are due and not yet materialized.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  "Today" is an explicit
    ``as_of`` argument; the engine never reads a clock.

Stepping:
    Every occurrence is computed from the start anchor, never from the
    previous occurrence, so month-end clamping does not drift:

        monthly from Jan 31:   Jan 31, Feb 29 (2024), Mar 31, Apr 30, ...
        yearly from Feb 29:    Feb 29 2024, Feb 28 2025, ..., Feb 29 2028

    daily = +1 day, weekly = +7 days, monthly = +1 month,
    quarterly = +3 months, yearly = +12 months.

Invariants enforced:
    - Idempotent: the same inputs always give the same output.
    - A date already in ``materialized`` is never emitted.
    - Every emitted date lies in [start, min(as_of, end)].

Failure modes:
    - ValidationError when end < start or the pattern is unknown.
"""

from __future__ import annotations

import calendar
from collections.abc import Collection
from datetime import date, timedelta

from khata_kernel.domain.validation import check_recurrence_bounds, coerce_enum
from khata_kernel.domain.values import RecurringPattern
from khata_kernel.logging_config import get_logger
from khata_engines.tracer import traced_engine

logger = get_logger("engines.recurrence")

# Calendar months per step for month-based patterns
_MONTH_STEPS: dict[RecurringPattern, int] = {
    RecurringPattern.MONTHLY: 1,
    RecurringPattern.QUARTERLY: 3,
    RecurringPattern.YEARLY: 12,
}

_DAY_STEPS: dict[RecurringPattern, int] = {
    RecurringPattern.DAILY: 1,
    RecurringPattern.WEEKLY: 7,
}


def add_months(anchor: date, months: int) -> date:
    """Shift ``anchor`` by whole months, clamping the day to the month's end."""
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def occurrence(pattern: RecurringPattern, start: date, k: int) -> date:
    """The k-th occurrence (k = 0 is ``start``)."""
    if pattern in _DAY_STEPS:
        return start + timedelta(days=_DAY_STEPS[pattern] * k)
    return add_months(start, _MONTH_STEPS[pattern] * k)


class RecurrenceExpander:
    """Computes the due, unmaterialized dates of a recurring template."""

    def __init__(self, max_occurrences: int | None = None):
        # Caps a single run; later runs pick up the rest
        self.max_occurrences = max_occurrences

    @traced_engine(
        "recurrence",
        "1.0",
        fingerprint_fields=("pattern", "start", "as_of", "end", "materialized"),
    )
    def expand(
        self,
        pattern: RecurringPattern | str,
        start: date,
        as_of: date,
        end: date | None = None,
        materialized: Collection[date] = frozenset(),
    ) -> list[date]:
        """
        Args:
            pattern: Step unit.
            start: Anchor date (first occurrence).
            as_of: Today; nothing after it is due.
            end: Optional last allowed date, inclusive.
            materialized: Dates already posted for this template.

        Returns:
            Due dates in ascending order, excluding ``materialized``.
        """
        pattern = coerce_enum(RecurringPattern, pattern, "recurring_pattern")
        check_recurrence_bounds(start, end)

        limit = as_of if end is None else min(as_of, end)
        done = set(materialized)
        due: list[date] = []

        k = 0
        current = start
        while current <= limit:
            if current not in done:
                due.append(current)
                if self.max_occurrences is not None and len(due) >= self.max_occurrences:
                    logger.warning(
                        "recurrence_cap_reached",
                        extra={
                            "pattern": pattern.value,
                            "start": start.isoformat(),
                            "max_occurrences": self.max_occurrences,
                        },
                    )
                    break
            k += 1
            current = occurrence(pattern, start, k)
        return due
