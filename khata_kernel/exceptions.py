"""
Typed exception hierarchy for the khata ledger core.

Every error has a typed class (catch by type, not by message), a ``code``
class attribute (machine-readable, safe to return from an API), and
structured attributes carrying the context that triggered it.

    KhataError (base)
    |
    +-- ValidationError          VALIDATION_ERROR
    |
    +-- ImmutableRecordError     IMMUTABLE_RECORD
    |
    +-- NotFoundError            NOT_FOUND
        +-- TransactionNotFoundError   TRANSACTION_NOT_FOUND
        +-- PartyNotFoundError         PARTY_NOT_FOUND

Handling:

    try:
        guard.request_edit(vendor_id, txn_id, {"amount": Decimal("10")}, actor)
    except ImmutableRecordError as e:
        # switch to the correction flow
        guard.correct(vendor_id, e.entity_id, actor, amount=Decimal("10"))

None of these are retried automatically.  ValidationError is fixed by
resubmitting corrected input, ImmutableRecordError by posting a correction
entry, NotFoundError by referencing an existing record.
"""


class KhataError(Exception):
    """Base exception for all ledger core errors."""

    code: str = "KHATA_ERROR"


class ValidationError(KhataError):
    """A transaction draft or request violates a ledger invariant."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class ImmutableRecordError(KhataError):
    """
    Attempted to mutate or delete a posted ledger record.

    Raised by the lifecycle guard for edit requests and by the ORM
    listeners for any flush that would change a frozen column.
    """

    code: str = "IMMUTABLE_RECORD"

    def __init__(self, entity_type: str, entity_id: str, field: str | None = None, reason: str = ""):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field = field
        self.reason = reason
        super().__init__(
            f"Immutable record {entity_type} {entity_id}: {reason}"
        )


class NotFoundError(KhataError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class TransactionNotFoundError(NotFoundError):
    """Ledger transaction with given ID was not found for the vendor."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Ledger transaction not found: {transaction_id}")


class PartyNotFoundError(NotFoundError):
    """Customer or supplier with given ID was not found for the vendor."""

    code: str = "PARTY_NOT_FOUND"

    def __init__(self, party_id: str, party_kind: str | None = None):
        self.party_id = party_id
        self.party_kind = party_kind
        label = party_kind or "party"
        super().__init__(f"{label.capitalize()} not found: {party_id}")
