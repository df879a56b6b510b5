#!/usr/bin/env python3
"""
Fixed-Point Arithmetic Tests

18-digit floor semantics, exact square roots and the 128-bit amount range.
"""

from decimal import Decimal
from math import isqrt

import pytest

from basket_arb.core.errors import ArithmeticOverflow, DivisionByZero
from basket_arb.core.fixed_point import (
    DECIMAL_FRACTIONAL, UINT128_MAX, ceil_div, checked_amount, decimal_from_ratio,
    decimal_sqrt, from_atomics, mul_floor, scaled_sqrt, to_atomics, to_decimal,
)


class TestDecimalConversion:
    """Parsing and scaling of fixed-point values"""

    def test_to_atomics_scales_by_ten_to_the_eighteen(self):
        assert to_atomics(Decimal("1")) == DECIMAL_FRACTIONAL
        assert to_atomics("2.5") == 25 * 10 ** 17

    def test_to_atomics_truncates_extra_digits(self):
        # 19th fractional digit is dropped, never rounded up
        assert to_atomics(Decimal("0.0000000000000000019")) == 1

    def test_to_decimal_round_trips_through_atomics(self):
        assert to_decimal("1.23") == Decimal("1.23")
        assert from_atomics(to_atomics("4.35")) == Decimal("4.35")

    def test_negative_values_are_rejected(self):
        with pytest.raises(ValueError):
            to_atomics(Decimal("-1"))


class TestRatiosAndProducts:
    """Floor division and multiplication"""

    def test_decimal_from_ratio_floors(self):
        assert decimal_from_ratio(1, 3) == Decimal("0.333333333333333333")
        assert decimal_from_ratio(2, 3) == Decimal("0.666666666666666666")

    def test_decimal_from_ratio_exact(self):
        assert decimal_from_ratio(9000, 10000) == Decimal("0.9")

    def test_decimal_from_ratio_by_zero(self):
        with pytest.raises(DivisionByZero):
            decimal_from_ratio(1, 0)

    def test_mul_floor(self):
        assert mul_floor(100, Decimal("1.0")) == 100
        assert mul_floor(200, Decimal("2.0")) == 400
        assert mul_floor(3, Decimal("0.5")) == 1
        assert mul_floor(10 ** 30, Decimal("0.333333333333333333")) == 333333333333333333 * 10 ** 12

    def test_ceil_div(self):
        assert ceil_div(999, 999) == 1
        assert ceil_div(1000, 999) == 2
        assert ceil_div(0, 999) == 0
        with pytest.raises(DivisionByZero):
            ceil_div(1, 0)


class TestSquareRoots:
    """Integer square roots with a precision multiplier"""

    def test_scaled_sqrt_of_integer(self):
        assert scaled_sqrt(10000, 10000) == 1_000_000
        assert scaled_sqrt(9000, 10000) == 948683

    def test_scaled_sqrt_of_decimal(self):
        assert scaled_sqrt(Decimal("1.0"), 10000) == 10000
        assert scaled_sqrt(Decimal("2"), 10000) == 14142

    def test_scaled_sqrt_is_floor_of_real_root(self):
        for value in [2, 3, 5, 123456789, 10 ** 30 + 7]:
            root = scaled_sqrt(value, 10000)
            assert root * root <= value * 10 ** 8 < (root + 1) * (root + 1)

    def test_decimal_sqrt(self):
        assert decimal_sqrt(Decimal("4")) == Decimal("2")
        assert to_atomics(decimal_sqrt(Decimal("2"))) == isqrt(2 * DECIMAL_FRACTIONAL ** 2)


class TestAmountRange:
    """Venue amounts are unsigned 128-bit integers"""

    def test_checked_amount_passes_in_range(self):
        assert checked_amount(0) == 0
        assert checked_amount(UINT128_MAX) == UINT128_MAX

    def test_checked_amount_rejects_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_amount(UINT128_MAX + 1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
