"""
Module: khata_kernel.db.types
Responsibility: Precision and rounding helpers for money values.
    Centralizes the ledger's fixed-point rules so that models, validation
    and engines agree on them.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and engines.  MUST NOT import from any of those
    layers.

Ledger amounts are fixed-point with two minor-unit digits (paise, cents).
No floats anywhere in the ledger core.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the ledger precision.

    This is the only rounding function used for ledger amounts.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def has_excess_precision(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> bool:
    """True if ``value`` carries more fractional digits than the ledger stores."""
    exponent = value.normalize().as_tuple().exponent
    return isinstance(exponent, int) and -exponent > decimal_places
