"""Tests for refinery.interval — propagation and its soundness."""

from __future__ import annotations

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from refinery.arithmetic import Op
from refinery.interval import (
    add_intervals,
    mul_intervals,
    negate_interval,
    propagate,
    sub_intervals,
)
from refinery.numeric import FLOAT64, INT32, INT64, UINT8
from refinery.predicates import Interval

# ---------------------------------------------------------------------------
# Concrete propagation
# ---------------------------------------------------------------------------


class TestPropagation:
    def test_add(self) -> None:
        assert add_intervals(Interval(3, 10), Interval(0, 5), INT64) == Interval(3, 15)

    def test_sub(self) -> None:
        assert sub_intervals(Interval(3, 10), Interval(0, 5), INT64) == Interval(-2, 10)

    def test_mul_straddling_zero(self) -> None:
        assert mul_intervals(Interval(-2, 3), Interval(-5, 4), INT64) == Interval(-15, 12)

    def test_mul_positive(self) -> None:
        assert mul_intervals(Interval(2, 3), Interval(4, 5), INT64) == Interval(8, 15)

    def test_negate(self) -> None:
        assert negate_interval(Interval(3, 10), INT64) == Interval(-10, -3)

    def test_propagate_dispatch(self) -> None:
        i1, i2 = Interval(1, 2), Interval(3, 4)
        assert propagate(Op.ADD, i1, i2, INT64) == Interval(4, 6)
        assert propagate(Op.SUB, i1, i2, INT64) == Interval(-3, -1)
        assert propagate(Op.MUL, i1, i2, INT64) == Interval(3, 8)
        assert propagate(Op.NEG, i1, None, INT64) == Interval(-2, -1)

    def test_binary_needs_two_intervals(self) -> None:
        with pytest.raises(TypeError):
            propagate(Op.ADD, Interval(1, 2), None, INT64)


# ---------------------------------------------------------------------------
# Saturation at the base type's extremes
# ---------------------------------------------------------------------------


class TestSaturation:
    def test_add_saturates(self) -> None:
        result = add_intervals(Interval(0, INT32.max), Interval(1, 1), INT32)
        assert result == Interval(1, INT32.max)

    def test_negate_min_saturates(self) -> None:
        result = negate_interval(Interval(INT32.min, 0), INT32)
        assert result == Interval(0, INT32.max)

    def test_unbounded_upper_resolves_to_max(self) -> None:
        result = add_intervals(Interval(5), Interval(1), INT64)
        assert result == Interval(6, INT64.max)

    def test_bounds_clamped_to_base(self) -> None:
        result = add_intervals(Interval(-10, 1000), Interval(0, 0), UINT8)
        assert result == Interval(0, 255)

    def test_unsigned_sub(self) -> None:
        result = sub_intervals(Interval(0, 10), Interval(0, 20), UINT8)
        assert result == Interval(0, 10)

    def test_float_unbounded(self) -> None:
        result = add_intervals(Interval(0.0), Interval(1.0, 2.0), FLOAT64)
        assert result.lo == 1.0
        assert result.hi == math.inf

    def test_float_infinite_times_zero(self) -> None:
        result = mul_intervals(Interval(-math.inf, math.inf), Interval(0.0, 0.0), FLOAT64)
        assert result == Interval(0.0, 0.0)

    def test_float_finite_overflow_clamps(self) -> None:
        big = FLOAT64.max
        result = add_intervals(Interval(0.0, big), Interval(0.0, big), FLOAT64)
        assert result == Interval(0.0, big)


# ---------------------------------------------------------------------------
# Soundness: every concrete result lies in the propagated interval
# ---------------------------------------------------------------------------

_bound = st.integers(min_value=-(10**6), max_value=10**6)


@st.composite
def _interval_and_member(draw: st.DrawFn) -> tuple[Interval, int]:
    lo = draw(_bound)
    hi = draw(st.integers(min_value=lo, max_value=lo + 10**6))
    x = draw(st.integers(min_value=lo, max_value=hi))
    return Interval(lo, hi), x


class TestSoundness:
    @given(a=_interval_and_member(), b=_interval_and_member())
    def test_add(self, a: tuple[Interval, int], b: tuple[Interval, int]) -> None:
        (i1, x), (i2, y) = a, b
        assert add_intervals(i1, i2, INT64)(x + y)

    @given(a=_interval_and_member(), b=_interval_and_member())
    def test_sub(self, a: tuple[Interval, int], b: tuple[Interval, int]) -> None:
        (i1, x), (i2, y) = a, b
        assert sub_intervals(i1, i2, INT64)(x - y)

    @given(a=_interval_and_member(), b=_interval_and_member())
    def test_mul(self, a: tuple[Interval, int], b: tuple[Interval, int]) -> None:
        (i1, x), (i2, y) = a, b
        assert mul_intervals(i1, i2, INT64)(x * y)

    @given(a=_interval_and_member())
    def test_negate(self, a: tuple[Interval, int]) -> None:
        i, x = a
        assert negate_interval(i, INT64)(-x)

    @given(a=_interval_and_member(), b=_interval_and_member())
    def test_result_is_tight(self, a: tuple[Interval, int], b: tuple[Interval, int]) -> None:
        (i1, _), (i2, _) = a, b
        result = add_intervals(i1, i2, INT64)
        assert result.lo == i1.lo + i2.lo
        assert result.hi == i1.hi + i2.hi
