from __future__ import annotations

from decimal import Decimal


def to_decimal(value: int, decimals: int) -> Decimal:
    """Convert a fixed-point integer to a Decimal.

    Args:
        value: Integer amount expressed with ``decimals`` decimal places.
        decimals: Decimal precision of ``value``.

    Returns:
        The exact decimal value, e.g. ``to_decimal(123456789, 8) == Decimal("1.23456789")``.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return Decimal(value).scaleb(-decimals)


def format_units(value: int, decimals: int) -> str:
    """Format a fixed-point integer as a plain decimal string.

    Keeps every fractional digit, so ``format_units(100000000, 8)`` is
    ``"1.00000000"`` and ``format_units(0, 2)`` is ``"0.00"``.
    """
    return format(to_decimal(value, decimals), "f")
