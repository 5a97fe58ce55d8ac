"""Decimal helpers for amounts and the balance comparison tolerance."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and floats to ``Decimal`` (floats through ``str``)."""
    if isinstance(value, float):
        value = str(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Montant invalide : {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Montant invalide : {value!r}")
    return result


def quantize(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def tolerance() -> Decimal:
    """Absolute tolerance used when comparing a total against a package value."""
    return to_decimal(getattr(settings, "PAYMENT_TOLERANCE", CENT))


def exceeds(total, limit) -> bool:
    """True when ``total`` is above ``limit`` by more than the tolerance."""
    return to_decimal(total) > to_decimal(limit) + tolerance()
