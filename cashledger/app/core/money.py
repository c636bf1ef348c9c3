"""Integer-cent helpers. All stored amounts are cents."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENTS_PER_UNIT = Decimal("100")


def to_cents(amount: Decimal) -> int:
    """Major units to integer cents, rounding half away from zero."""
    return int((amount * CENTS_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cents(cents: int) -> str:
    """``10000`` -> ``"100.00"``."""
    return str((Decimal(cents) / CENTS_PER_UNIT).quantize(Decimal("0.01")))

# Largest value a BIGINT column holds
MAX_CENTS = 2**63 - 1
