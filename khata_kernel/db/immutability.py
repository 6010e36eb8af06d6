"""
ORM-level immutability enforcement for posted ledger transactions.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners registered here inspect attribute history on the
flushed object and abort the flush when a posted row would change:

    session.flush()
         |
         v
    [before_update] --> _check_ledger_transaction_immutability() --> ImmutableRecordError
         |
         v
    [before_delete] --> _check_ledger_transaction_delete() ---------> ImmutableRecordError
         |
         v
    SQL sent to database (only if checks pass)

Rules:

    Entity              | When immutable                 | Mutable fields
    --------------------|--------------------------------|----------------------------------
    LedgerTransaction   | once posted_at is set          | note, attachments, updated_at,
                        |                                | updated_by_id
    LedgerTransaction   | DELETE, once posted_at is set  | none

The lifecycle guard is the first line: it refuses edits before they touch
the ORM object.  These listeners catch anything that bypasses it, such as a
caller mutating a model instance directly.  Bulk ``update()`` statements
skip mapper events and are not covered.

Usage:
    register_immutability_listeners() is called once at startup (and by the
    test harness).  unregister_immutability_listeners() exists for tests that
    must bypass the rules deliberately.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from khata_kernel.exceptions import ImmutableRecordError
from khata_kernel.logging_config import get_logger
from khata_kernel.models.ledger_transaction import (
    LEDGER_MUTABLE_AFTER_POST,
    LedgerTransactionModel,
)

logger = get_logger("db.immutability")

_ENTITY = "LedgerTransaction"


def _was_posted(target: LedgerTransactionModel) -> bool:
    """True if the row was already posted before the pending change."""
    history = get_history(target, "posted_at")
    if history.deleted:
        return history.deleted[0] is not None
    if history.added:
        # posted_at is being set in this flush: the posting transition itself
        return False
    return target.posted_at is not None


def _check_ledger_transaction_immutability(mapper, connection, target):
    """Block changes to any financial field on a posted ledger transaction."""
    if not isinstance(target, LedgerTransactionModel):
        return

    if not _was_posted(target):
        return

    for attr in inspect(target).attrs:
        if attr.key in LEDGER_MUTABLE_AFTER_POST:
            continue
        if attr.history.has_changes():
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": _ENTITY,
                    "entity_id": str(target.id),
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise ImmutableRecordError(
                entity_type=_ENTITY,
                entity_id=str(target.id),
                field=attr.key,
                reason=f"Cannot modify field '{attr.key}' on a posted transaction; post a correction instead",
            )


def _check_ledger_transaction_delete(mapper, connection, target):
    """Block deletion of a posted ledger transaction."""
    if not isinstance(target, LedgerTransactionModel):
        return

    if target.posted_at is not None:
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": _ENTITY,
                "entity_id": str(target.id),
                "operation": "DELETE",
            },
        )
        raise ImmutableRecordError(
            entity_type=_ENTITY,
            entity_id=str(target.id),
            reason="Posted transactions cannot be deleted; post a correction instead",
        )


def register_immutability_listeners() -> None:
    """
    Register the immutability listeners.  Safe to call more than once.
    """
    if not event.contains(LedgerTransactionModel, "before_update", _check_ledger_transaction_immutability):
        event.listen(LedgerTransactionModel, "before_update", _check_ledger_transaction_immutability)
    if not event.contains(LedgerTransactionModel, "before_delete", _check_ledger_transaction_delete):
        event.listen(LedgerTransactionModel, "before_delete", _check_ledger_transaction_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the immutability listeners.

    WARNING: only for tests that need to violate the rules on purpose.
    """
    _safe_remove_listener(LedgerTransactionModel, "before_update", _check_ledger_transaction_immutability)
    _safe_remove_listener(LedgerTransactionModel, "before_delete", _check_ledger_transaction_delete)
