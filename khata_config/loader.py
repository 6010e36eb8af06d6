"""
Configuration Loader (``khata_config.loader``).

Responsibility
--------------
Loads the YAML configuration file, applies ``KHATA_*`` environment
overrides, and parses the result into a frozen ``KhataConfig``.  Runtime
callers go through ``khata_config.get_active_config()``.

Invariants enforced
-------------------
* Every value is validated on load; there are no silent defaults for
  invalid input.
* ``compute_checksum`` is a deterministic SHA-256 of the effective
  (post-override) configuration.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown timezone, bad week start, non-positive occurrence cap
  -> ``ValueError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
import os
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from khata_config.schema import KhataConfig
from khata_engines.buckets import WEEK_STARTS

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "KHATA_DATABASE_URL": ("database", "url"),
    "KHATA_TIMEZONE": ("locale", "timezone"),
    "KHATA_WEEK_STARTS_ON": ("locale", "week_starts_on"),
    "KHATA_CURRENCY_SYMBOL": ("locale", "currency_symbol"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Return a copy of ``data`` with any set ``KHATA_*`` variables applied."""
    env = os.environ if environ is None else environ
    merged = copy.deepcopy(data)
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            merged.setdefault(section, {})[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name!r}") from None
    return name


def parse_config(data: dict[str, Any]) -> KhataConfig:
    """
    Parse a configuration mapping into a ``KhataConfig``.

    Raises:
        ValueError: On any invalid value.
    """
    database = data.get("database") or {}
    locale = data.get("locale") or {}
    recurrence = data.get("recurrence") or {}

    url = database.get("url")
    if not url:
        raise ValueError("database.url is required")

    week_starts_on = str(locale.get("week_starts_on", "sunday")).lower()
    if week_starts_on not in WEEK_STARTS:
        raise ValueError(
            f"locale.week_starts_on must be one of {sorted(WEEK_STARTS)}, got {week_starts_on!r}"
        )

    max_occurrences = int(recurrence.get("max_occurrences", 366))
    if max_occurrences <= 0:
        raise ValueError(f"recurrence.max_occurrences must be positive, got {max_occurrences}")

    return KhataConfig(
        config_id=str(data.get("config_id", "khata-default")),
        version=int(data.get("version", 1)),
        database_url=str(url),
        timezone=_validate_timezone(str(locale.get("timezone", "UTC"))),
        week_starts_on=week_starts_on,
        currency_symbol=str(locale.get("currency_symbol", "₹")),
        recurrence_max_occurrences=max_occurrences,
        echo_sql=bool(database.get("echo_sql", False)),
        checksum=compute_checksum(data),
    )


def load_config(path: Path, environ: Mapping[str, str] | None = None) -> KhataConfig:
    """Load ``path``, apply environment overrides, and parse."""
    return parse_config(apply_env_overrides(load_yaml_file(path), environ))
