"""Database layer - engine, base classes, types, and immutability."""

from khata_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from khata_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from khata_kernel.db.types import ZERO, round_money

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "ZERO",
    "round_money",
]
