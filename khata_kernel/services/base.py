"""
BaseService -- abstract base for kernel write services.

Responsibility:
    Common constructor and session-handling contract.  Every write service
    receives a SQLAlchemy ``Session`` from its caller and persists with
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries belong to the caller.  Services flush within
      the caller's transaction and never commit or roll back, so that a
      multi-step operation (a correction and its replacement, a POS
      checkout's paid and due rows) lands atomically or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from khata_kernel.db.base import Base
from khata_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage commit/rollback.
        - Does NOT provide read-only query helpers; those live in
          ``khata_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
