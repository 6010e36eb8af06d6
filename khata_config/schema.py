"""
KhataConfig schema.

The frozen runtime view of the YAML configuration.  Parsed by the loader,
returned by ``khata_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from zoneinfo import ZoneInfo

from khata_engines.buckets import WEEK_STARTS


@dataclass(frozen=True)
class KhataConfig:
    """Runtime configuration for the ledger core."""

    config_id: str
    version: int
    database_url: str
    timezone: str
    week_starts_on: str
    currency_symbol: str
    recurrence_max_occurrences: int
    echo_sql: bool = False
    checksum: str = ""

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def week_start_index(self) -> int:
        """``date.weekday()`` number of the first day of the week."""
        return WEEK_STARTS[self.week_starts_on]
