"""
End-to-end: bootstrap from configuration, commit through session_scope,
read back from a fresh session.

Runs against its own SQLite file so committed rows never leak into the
shared test database.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

import khata_kernel.db.engine as engine_module
from khata_config.loader import parse_config
from khata_kernel.db.engine import get_session, session_scope
from khata_kernel.domain.clock import DeterministicClock
from khata_kernel.domain.dtos import TransactionDraft
from khata_kernel.domain.values import PartyKind
from khata_kernel.exceptions import ImmutableRecordError
from khata_kernel.models import LedgerTransactionModel
from khata_kernel.services.lifecycle_guard import LifecycleGuard
from khata_kernel.services.party_service import PartyService
from khata_services.bootstrap import bootstrap
from khata_services.statement_service import StatementService


@pytest.fixture
def file_config(tmp_path, monkeypatch):
    """A configuration pointing at a throwaway SQLite file.

    The module-level engine is restored afterwards so the shared test
    engine keeps working.
    """
    shared_engine = engine_module._engine
    monkeypatch.setattr(engine_module, "_engine", shared_engine)
    monkeypatch.setattr(engine_module, "_SessionFactory", engine_module._SessionFactory)
    config = parse_config({
        "config_id": "khata-e2e",
        "database": {"url": f"sqlite:///{tmp_path / 'khata.db'}"},
        "locale": {"timezone": "Asia/Kolkata", "week_starts_on": "monday"},
    })
    yield config
    if engine_module._engine is not shared_engine:
        engine_module._engine.dispose()


class TestBootstrap:
    def test_committed_rows_survive_sessions(self, file_config, test_actor_id, vendor_id, captured_logs):
        engine = bootstrap(file_config)
        clock = DeterministicClock(datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc))

        with session_scope() as session:
            customer = PartyService(session, clock).register(
                vendor_id, PartyKind.CUSTOMER, "Kiran Provisions", test_actor_id
            )
            LifecycleGuard(session, clock).create(
                TransactionDraft(
                    vendor_id=vendor_id,
                    customer_id=customer.id,
                    type="out",
                    amount="1200",
                    transaction_date=clock.now(),
                    payment_method="credit",
                ),
                test_actor_id,
            )

        session = get_session()
        try:
            statement = StatementService(session, file_config, clock).party_statement(
                vendor_id, customer.id, PartyKind.CUSTOMER
            )
        finally:
            session.close()

        assert engine.dialect.name == "sqlite"
        assert statement.balance.balance == Decimal("-1200")
        assert statement.description == "Customer will pay you ₹1,200"
        assert any(r["message"] == "khata_bootstrapped" for r in captured_logs())

    def test_listeners_active_after_bootstrap(self, file_config, test_actor_id, vendor_id):
        bootstrap(file_config)
        clock = DeterministicClock()

        with session_scope() as session:
            posted = LifecycleGuard(session, clock).create(
                TransactionDraft(vendor_id=vendor_id, type="in", amount="10", transaction_date=clock.now()),
                test_actor_id,
            )

        with pytest.raises(ImmutableRecordError):
            with session_scope() as session:
                row = session.get(LedgerTransactionModel, posted.id)
                row.amount = Decimal("11")
