"""
Application startup wiring for the ledger core.

    from khata_config import get_active_config
    from khata_services.bootstrap import bootstrap

    engine = bootstrap(get_active_config())

Initializes the engine from configuration, creates the tables, registers
the ORM immutability listeners and configures structured logging.
Idempotent: calling it twice re-initializes the engine with the same
settings.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from khata_config.schema import KhataConfig
from khata_kernel.db.engine import create_tables, init_engine_from_url
from khata_kernel.db.immutability import register_immutability_listeners
from khata_kernel.logging_config import configure_logging, get_logger

logger = get_logger("bootstrap")


def bootstrap(config: KhataConfig, create_schema: bool = True) -> Engine:
    configure_logging()
    engine = init_engine_from_url(config.database_url, echo=config.echo_sql)
    if create_schema:
        create_tables()
    register_immutability_listeners()
    logger.info(
        "khata_bootstrapped",
        extra={
            "config_id": config.config_id,
            "config_checksum": config.checksum,
            "dialect": engine.dialect.name,
        },
    )
    return engine
