"""
khata_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  Services receive the returned ``KhataConfig``; they never
    read YAML files or environment variables themselves.

Architecture position:
    Configuration -- sits above ``khata_kernel`` and ``khata_engines`` and
    below ``khata_services``.  The kernel MUST NEVER import from here.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value fails validation.
"""

from __future__ import annotations

from pathlib import Path

from khata_config.loader import compute_checksum, load_config
from khata_config.schema import KhataConfig
from khata_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "khata.yaml"


def get_active_config(config_path: Path | str | None = None) -> KhataConfig:
    """
    Load the active configuration.

    Args:
        config_path: Override path to a YAML file.  Defaults to the packaged
            ``defaults/khata.yaml``.

    Returns:
        A frozen, validated ``KhataConfig``.  ``KHATA_*`` environment
        variables have been applied.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "KHATA_CONFIG_TRACE",
        extra={
            "trace_type": "KHATA_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "timezone": config.timezone,
            "week_starts_on": config.week_starts_on,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "KhataConfig",
    "compute_checksum",
    "get_active_config",
]
