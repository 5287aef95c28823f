"""Interval propagation for ``+ - * negate``.

Given the interval predicates of two operands, compute the smallest interval
guaranteed to contain every possible result::

    [l1, h1] + [l2, h2] = [l1 + l2, h1 + h2]
    [l1, h1] - [l2, h2] = [l1 - h2, h1 - l2]
    [l1, h1] * [l2, h2] = [min(corners), max(corners)]
    -[l, h]             = [-h, -l]

Every bound is computed with saturating arithmetic, so the declared range
never overflows the base type: it can only widen to the type's extremes.
"""

from __future__ import annotations

import math
from typing import Any

from .arithmetic import Op, sat_add, sat_mul, sat_neg, sat_sub
from .numeric import FloatType, IntType, NumericType
from .predicates import Interval


def _bounds(i: Interval, base: NumericType) -> tuple[Any, Any]:
    """Effective ``(lo, hi)`` of *i* within *base*."""
    hi = base.max if i.hi is None else i.hi
    lo = i.lo
    if isinstance(base, IntType):
        lo = max(lo, base.min)
        hi = min(hi, base.max)
    elif isinstance(base, FloatType) and i.hi is None:
        hi = math.inf
    return lo, hi


def _widen(lo: Any, hi: Any) -> Interval:
    # inf + -inf style NaN bounds can only come from float intervals
    if isinstance(lo, float) and math.isnan(lo):
        lo = -math.inf
    if isinstance(hi, float) and math.isnan(hi):
        hi = math.inf
    return Interval(lo, hi)


def add_intervals(i1: Interval, i2: Interval, base: NumericType) -> Interval:
    l1, h1 = _bounds(i1, base)
    l2, h2 = _bounds(i2, base)
    return _widen(sat_add(l1, l2, base), sat_add(h1, h2, base))


def sub_intervals(i1: Interval, i2: Interval, base: NumericType) -> Interval:
    l1, h1 = _bounds(i1, base)
    l2, h2 = _bounds(i2, base)
    return _widen(sat_sub(l1, h2, base), sat_sub(h1, l2, base))


def mul_intervals(i1: Interval, i2: Interval, base: NumericType) -> Interval:
    """Multiply two intervals via their four corner products.

    Taking min/max over ``l1*l2, l1*h2, h1*l2, h1*h2`` handles operands that
    straddle zero: ``[-2, 3] * [-5, 4]`` is ``[-15, 12]``.
    """
    l1, h1 = _bounds(i1, base)
    l2, h2 = _bounds(i2, base)
    corners = [
        sat_mul(l1, l2, base),
        sat_mul(l1, h2, base),
        sat_mul(h1, l2, base),
        sat_mul(h1, h2, base),
    ]
    if any(isinstance(c, float) and math.isnan(c) for c in corners):
        return Interval(-math.inf, math.inf)
    return Interval(min(corners), max(corners))


def negate_interval(i: Interval, base: NumericType) -> Interval:
    lo, hi = _bounds(i, base)
    return _widen(sat_neg(hi, base), sat_neg(lo, base))


def propagate(op: Op, i1: Interval, i2: Interval | None, base: NumericType) -> Interval:
    """Dispatch to the propagation rule for *op* (*i2* is ignored for NEG)."""
    if op is Op.NEG:
        return negate_interval(i1, base)
    if i2 is None:
        raise TypeError(f"{op.name} needs two intervals")
    if op is Op.ADD:
        return add_intervals(i1, i2, base)
    if op is Op.SUB:
        return sub_intervals(i1, i2, base)
    return mul_intervals(i1, i2, base)
