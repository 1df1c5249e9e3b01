"""
Kwanza money helpers.

All payroll amounts are ``Decimal`` and are rounded to whole kwanza with
ROUND_HALF_UP at each statutory amount (INSS, overtime, absence
deduction, subsidies, termination components).  IRT is rounded up so any
income above the exemption ceiling withholds at least one kwanza.
Intermediate rates (hourly rate, daily rate) keep full precision.  Never
use float.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
ONE_KWANZA = Decimal("1")
CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Coerce an int/str/Decimal to Decimal.  Floats are refused."""
    if isinstance(value, float):
        raise TypeError(f"Monetary values must not be float (got {value!r})")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def to_kwanza(amount: Decimal) -> Decimal:
    """Round to whole kwanza, half away from zero."""
    return amount.quantize(ONE_KWANZA, rounding=ROUND_HALF_UP)


def to_kwanza_up(amount: Decimal) -> Decimal:
    """Round up to the next whole kwanza."""
    return amount.quantize(ONE_KWANZA, rounding=ROUND_CEILING)


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    return max(lower, min(upper, value))
