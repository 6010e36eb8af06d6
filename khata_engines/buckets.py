"""
Module: khata_engines.buckets
Responsibility:
    Group statement transactions under human-relative date labels.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``now`` is passed in.

Labels (first match wins, all compared as calendar dates in ``tz``):
    same day as now            -> "Today"
    the day before now         -> "Yesterday"
    same calendar week as now  -> weekday name, e.g. "Monday"
    same calendar month as now -> "Jan 05"
    anything else              -> "Jan 05, 2024"

Invariants enforced:
    - Input order is preserved inside each bucket and buckets appear in
      the order their first transaction does.  The engine never sorts.
    - Naive datetimes are read as UTC.
    - Labels are locale independent.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone, tzinfo

from khata_kernel.domain.clock import ensure_aware
from khata_kernel.domain.dtos import LedgerTransaction
from khata_engines.tracer import traced_engine

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# date.weekday() numbering
MONDAY = 0
SUNDAY = 6

WEEK_STARTS = {"monday": MONDAY, "sunday": SUNDAY}


def week_start(day: date, week_starts_on: int = SUNDAY) -> date:
    """First day of the calendar week containing ``day``."""
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


class DateBucketAggregator:
    """
    Assigns statement labels relative to ``now``.

    Args:
        tz: Timezone whose calendar decides what "today" means.
        week_starts_on: 0 for Monday, 6 for Sunday (``date.weekday()``).
    """

    def __init__(self, tz: tzinfo = timezone.utc, week_starts_on: int = SUNDAY):
        if not 0 <= week_starts_on <= 6:
            raise ValueError(f"week_starts_on must be 0-6, got {week_starts_on}")
        self.tz = tz
        self.week_starts_on = week_starts_on

    def local_date(self, when: datetime) -> date:
        return ensure_aware(when).astimezone(self.tz).date()

    def label_for(self, when: datetime, now: datetime) -> str:
        day = self.local_date(when)
        today = self.local_date(now)

        if day == today:
            return "Today"
        if day == today - timedelta(days=1):
            return "Yesterday"

        this_week = week_start(today, self.week_starts_on)
        if this_week <= day < this_week + timedelta(days=7):
            return _WEEKDAYS[day.weekday()]

        month_day = f"{_MONTHS[day.month - 1]} {day.day:02d}"
        if (day.year, day.month) == (today.year, today.month):
            return month_day
        return f"{month_day}, {day.year}"

    @traced_engine("date_buckets", "1.0", fingerprint_fields=("now",))
    def group(
        self,
        transactions: Iterable[LedgerTransaction],
        now: datetime,
    ) -> dict[str, list[LedgerTransaction]]:
        groups: dict[str, list[LedgerTransaction]] = {}
        for txn in transactions:
            groups.setdefault(self.label_for(txn.transaction_date, now), []).append(txn)
        return groups
