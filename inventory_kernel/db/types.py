"""
Module: inventory_kernel.db.types
Responsibility: Conversion into Money Decimals, the single sanctioned
    rounding function, and the range a money column can hold.
Architecture position: Kernel > DB.  May be imported by models/, domain/ and
    services/.  MUST NOT import from any of those layers.

CRITICAL: No floats anywhere in the kernel.  Prices and totals are Decimal
    with two decimal places.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: object) -> Decimal:
    """
    Convert an int, str or Decimal to a Money Decimal.

    Floats are rejected: their binary representation cannot carry a price
    exactly.

    Raises:
        ValueError: If value is a float, bool, or not numeric.
    """
    if isinstance(value, (bool, float)):
        raise ValueError(f"Money must not be a {type(value).__name__}: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return round_money(amount)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for monetary values.
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)


# Largest amount a Numeric(14, 2) column holds
MONEY_MAX = Decimal("999999999999.99")


def fits_money(value: Decimal) -> bool:
    """True if ``value`` can be stored in a money column without loss."""
    return -MONEY_MAX <= value <= MONEY_MAX
