"""
Khata Kernel - the ledger core of the vendor suite.

An append-only, per-vendor ledger with:
- Money-in / money-out transactions against customers and suppliers
- Immutable posted records; corrections as reversing entries
- Derived balances (nothing stored, always recomputed)
- Tenant isolation by vendor_id on every read and write
"""

__version__ = "0.1.0"
