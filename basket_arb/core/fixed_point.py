#!/usr/bin/env python3
"""
Fixed-Point Arithmetic

Decimal values follow the venue convention of 18 fractional digits and
always round toward zero. Amounts are plain Python ints, so intermediate
products never overflow; only final amounts are checked against the
128-bit unsigned range a venue accepts.
"""

from decimal import Decimal, Context, ROUND_FLOOR
from math import isqrt
from typing import Union

from .errors import ArithmeticOverflow, DivisionByZero


DECIMAL_PLACES = 18
DECIMAL_FRACTIONAL = 10 ** DECIMAL_PLACES
UINT128_MAX = 2 ** 128 - 1

# Wide enough that no operation below is ever rounded by the context itself
_CTX = Context(prec=120, rounding=ROUND_FLOOR)

DecimalLike = Union[Decimal, str, int]


def to_decimal(value: DecimalLike) -> Decimal:
    """Parse a price or ratio, truncated to 18 fractional digits"""
    return from_atomics(to_atomics(value))


def to_atomics(value: DecimalLike) -> int:
    """Return floor(value * 10^18)"""
    d = value if isinstance(value, Decimal) else Decimal(value)
    if d < 0:
        raise ValueError(f"fixed-point values must be non-negative, got {d}")
    scaled = _CTX.multiply(d, Decimal(DECIMAL_FRACTIONAL))
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_atomics(atomics: int) -> Decimal:
    return _CTX.scaleb(Decimal(atomics), -DECIMAL_PLACES)


def decimal_from_ratio(numerator: int, denominator: int) -> Decimal:
    """numerator / denominator, floored to 18 fractional digits"""
    if denominator == 0:
        raise DivisionByZero(f"cannot divide {numerator} by zero")
    return from_atomics(numerator * DECIMAL_FRACTIONAL // denominator)


def mul_floor(amount: int, value: DecimalLike) -> int:
    """amount * value, floored to an integer amount"""
    return amount * to_atomics(value) // DECIMAL_FRACTIONAL


def scaled_sqrt(value: DecimalLike, multiplier: int) -> int:
    """
    floor(sqrt(value) * multiplier) without float rounding.

    Uses floor(sqrt(x)) == isqrt(floor(x)) for any real x >= 0.
    """
    if isinstance(value, int):
        return isqrt(value * multiplier * multiplier)
    atomics = to_atomics(value)
    return isqrt(atomics * multiplier * multiplier // DECIMAL_FRACTIONAL)


def decimal_sqrt(value: DecimalLike) -> Decimal:
    return from_atomics(isqrt(to_atomics(value) * DECIMAL_FRACTIONAL))


def ceil_div(numerator: int, denominator: int) -> int:
    if denominator == 0:
        raise DivisionByZero(f"cannot divide {numerator} by zero")
    return -(-numerator // denominator)


def checked_amount(value: int) -> int:
    """Reject amounts outside the unsigned 128-bit range"""
    if value < 0 or value > UINT128_MAX:
        raise ArithmeticOverflow(f"amount {value} does not fit in 128 bits")
    return value
