"""Tests for refinery.arithmetic — saturating bounds and checked values."""

from __future__ import annotations

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from refinery.arithmetic import (
    Op,
    checked_add,
    checked_div,
    checked_mod,
    checked_mul,
    checked_neg,
    checked_sub,
    sat_add,
    sat_mul,
    sat_neg,
    sat_sub,
)
from refinery.errors import ArithmeticOverflowError, RefinementError
from refinery.numeric import FLOAT32, FLOAT64, INT8, INT32, INT64, UINT8, UINT64

# ---------------------------------------------------------------------------
# Saturating arithmetic
# ---------------------------------------------------------------------------


class TestSaturating:
    def test_add_clamps_at_max(self) -> None:
        assert sat_add(INT32.max, 1, INT32) == INT32.max
        assert sat_add(INT32.max, INT32.max, INT32) == INT32.max

    def test_sub_clamps_at_min(self) -> None:
        assert sat_sub(INT32.min, 1, INT32) == INT32.min
        assert sat_sub(0, 1, UINT8) == 0

    def test_in_range_is_exact(self) -> None:
        assert sat_add(3, 4, INT8) == 7
        assert sat_sub(3, 4, INT8) == -1
        assert sat_mul(-3, 4, INT8) == -12

    def test_mul_clamps_by_sign(self) -> None:
        assert sat_mul(INT32.max, 2, INT32) == INT32.max
        assert sat_mul(INT32.max, -2, INT32) == INT32.min
        assert sat_mul(INT32.min, -1, INT32) == INT32.max

    def test_neg_of_min(self) -> None:
        assert sat_neg(INT32.min, INT32) == INT32.max
        assert sat_neg(5, INT32) == -5

    def test_unsigned(self) -> None:
        assert sat_add(UINT64.max, 1, UINT64) == UINT64.max
        assert sat_neg(5, UINT8) == 0

    def test_mul_zero_with_infinity_is_zero(self) -> None:
        assert sat_mul(0, math.inf, FLOAT64) == 0.0
        assert sat_mul(-math.inf, 0.0, FLOAT64) == 0.0

    def test_float_finite_overflow_clamps(self) -> None:
        assert sat_add(FLOAT64.max, FLOAT64.max, FLOAT64) == FLOAT64.max
        assert sat_sub(-FLOAT64.max, FLOAT64.max, FLOAT64) == -FLOAT64.max
        assert sat_add(FLOAT32.max, FLOAT32.max, FLOAT32) == FLOAT32.max

    def test_float_infinity_operands_stay_infinite(self) -> None:
        assert sat_add(math.inf, 1.0, FLOAT64) == math.inf
        assert sat_mul(-math.inf, 2.0, FLOAT64) == -math.inf

    @given(
        a=st.integers(min_value=INT32.min, max_value=INT32.max),
        b=st.integers(min_value=INT32.min, max_value=INT32.max),
    )
    @settings(max_examples=200)
    def test_add_never_leaves_range(self, a: int, b: int) -> None:
        r = sat_add(a, b, INT32)
        assert INT32.min <= r <= INT32.max
        if INT32.min <= a + b <= INT32.max:
            assert r == a + b


# ---------------------------------------------------------------------------
# Checked arithmetic
# ---------------------------------------------------------------------------


class TestChecked:
    def test_add_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError) as exc_info:
            checked_add(INT32.max, 1, INT32)
        err = exc_info.value
        assert err.value == INT32.max + 1
        assert "int32" in err.predicate
        assert "overflow in addition" in str(err)

    def test_overflow_error_is_refinement_and_overflow(self) -> None:
        with pytest.raises(RefinementError):
            checked_mul(INT8.max, 2, INT8)
        with pytest.raises(OverflowError):
            checked_mul(INT8.max, 2, INT8)

    def test_sub_underflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError, match="underflow in subtraction"):
            checked_sub(0, 1, UINT8)

    def test_neg_of_min(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            checked_neg(INT32.min, INT32)
        assert checked_neg(INT32.max, INT32) == -INT32.max

    def test_exact_in_range(self) -> None:
        assert checked_add(2, 3, INT64) == 5
        assert checked_sub(2, 3, INT64) == -1
        assert checked_mul(-4, 5, INT64) == -20

    def test_div_truncates_toward_zero(self) -> None:
        assert checked_div(7, 2, INT64) == 3
        assert checked_div(-7, 2, INT64) == -3
        assert checked_div(7, -2, INT64) == -3
        assert checked_div(-7, -2, INT64) == 3

    def test_mod_follows_dividend(self) -> None:
        assert checked_mod(7, 2, INT64) == 1
        assert checked_mod(-7, 2, INT64) == -1
        assert checked_mod(7, -2, INT64) == 1

    def test_div_min_by_minus_one(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            checked_div(INT32.min, -1, INT32)

    def test_div_by_zero(self) -> None:
        with pytest.raises(ZeroDivisionError):
            checked_div(1, 0, INT64)
        with pytest.raises(ZeroDivisionError):
            checked_mod(1, 0, INT64)

    def test_float_division(self) -> None:
        assert checked_div(1, 4, FLOAT64) == 0.25
        assert checked_mod(-7.5, 2.0, FLOAT64) == -1.5

    def test_float_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError, match="float overflow"):
            checked_add(1e308, 1e308, FLOAT64)
        with pytest.raises(ArithmeticOverflowError):
            checked_mul(1e30, 1e30, FLOAT32)

    def test_float_underflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError, match="underflow"):
            checked_mul(1e-200, 1e-200, FLOAT64)

    def test_float_underflow_accepted_on_request(self) -> None:
        assert checked_mul(1e-200, 1e-200, FLOAT64, underflow=False) == 0.0
        assert Op.MUL.checked(1e-200, -1e-200, FLOAT64, underflow=False) == 0.0
        with pytest.raises(ArithmeticOverflowError, match="float overflow"):
            checked_mul(1e200, 1e200, FLOAT64, underflow=False)

    def test_float_invalid(self) -> None:
        with pytest.raises(ArithmeticOverflowError, match="NaN"):
            checked_sub(math.inf, math.inf, FLOAT64)

    def test_float_special_operands_propagate(self) -> None:
        assert checked_add(math.inf, 1.0, FLOAT64) == math.inf
        assert math.isnan(checked_add(math.nan, 1.0, FLOAT64))

    @given(
        a=st.integers(min_value=INT8.min, max_value=INT8.max),
        b=st.integers(min_value=INT8.min, max_value=INT8.max),
    )
    def test_add_exact_or_raises(self, a: int, b: int) -> None:
        exact = a + b
        if INT8.min <= exact <= INT8.max:
            assert checked_add(a, b, INT8) == exact
        else:
            with pytest.raises(ArithmeticOverflowError):
                checked_add(a, b, INT8)

    @given(
        a=st.integers(min_value=INT8.min, max_value=INT8.max),
        b=st.integers(min_value=INT8.min, max_value=INT8.max),
    )
    def test_mul_exact_or_raises(self, a: int, b: int) -> None:
        exact = a * b
        if INT8.min <= exact <= INT8.max:
            assert checked_mul(a, b, INT8) == exact
        else:
            with pytest.raises(ArithmeticOverflowError):
                checked_mul(a, b, INT8)


# ---------------------------------------------------------------------------
# Op
# ---------------------------------------------------------------------------


class TestOp:
    def test_symbols(self) -> None:
        assert Op.ADD.symbol == "+"
        assert Op.NEG.symbol == "-"
        assert Op.NEG.unary
        assert not Op.MUL.unary

    def test_checked_dispatch(self) -> None:
        assert Op.ADD.checked(2, 3, INT64) == 5
        assert Op.SUB.checked(2, 3, INT64) == -1
        assert Op.MUL.checked(2, 3, INT64) == 6
        assert Op.NEG.checked(2, None, INT64) == -2

    def test_raw(self) -> None:
        assert Op.MUL.raw(10**20, 10**20) == 10**40
        assert Op.NEG.raw(3) == -3
