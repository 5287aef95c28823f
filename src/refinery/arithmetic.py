"""Saturating bound arithmetic and checked value arithmetic.

Two separate concerns live here:

- ``sat_*`` reason about *declared bounds*. They never fail: a result
  outside the base type's range is clamped to its minimum/maximum, which
  keeps a propagated interval sound (never tighter than reality).
- ``checked_*`` compute on *actual values*. A result outside the base
  type's range raises :class:`~refinery.errors.ArithmeticOverflowError`
  instead of wrapping or saturating.

Both take the base type descriptor from :mod:`refinery.numeric`.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from .errors import ArithmeticOverflowError
from .numeric import FloatType, IntType, NumericType

# ---------------------------------------------------------------------------
# Saturating bound arithmetic
# ---------------------------------------------------------------------------


def _clamp_int(value: int, base: IntType) -> int:
    if value > base.max:
        return base.max
    if value < base.min:
        return base.min
    return value


def _clamp_float(result: float, a: float, b: float, base: FloatType) -> float:
    """Clamp a float result that overflowed from finite operands."""
    if math.isinf(result) and math.isfinite(a) and math.isfinite(b):
        return base.max if result > 0 else -base.max
    if result > base.max and math.isfinite(result):
        return base.max
    if result < -base.max and math.isfinite(result):
        return -base.max
    return result


def sat_add(a: Any, b: Any, base: NumericType) -> Any:
    """``a + b`` clamped to *base*'s representable range.

    For floats, ``inf + -inf`` yields NaN; callers that need a bound widen
    it (see :func:`refinery.interval.add_intervals`).
    """
    if isinstance(base, IntType):
        return _clamp_int(a + b, base)
    a, b = float(a), float(b)
    return _clamp_float(a + b, a, b, base)


def sat_sub(a: Any, b: Any, base: NumericType) -> Any:
    """``a - b`` clamped to *base*'s representable range."""
    if isinstance(base, IntType):
        return _clamp_int(a - b, base)
    a, b = float(a), float(b)
    return _clamp_float(a - b, a, b, base)


def sat_mul(a: Any, b: Any, base: NumericType) -> Any:
    """``a * b`` clamped to *base*'s representable range.

    Either operand being zero yields zero, including for infinite floats
    (a bound of ``0 * inf`` is 0, not NaN).
    """
    if a == 0 or b == 0:
        return base.zero
    if isinstance(base, IntType):
        return _clamp_int(a * b, base)
    a, b = float(a), float(b)
    return _clamp_float(a * b, a, b, base)


def sat_neg(a: Any, base: NumericType) -> Any:
    """``-a`` clamped; ``sat_neg(INT32.min)`` is ``INT32.max``."""
    if isinstance(base, IntType):
        return _clamp_int(-a, base)
    return -float(a)


# ---------------------------------------------------------------------------
# Checked value arithmetic
# ---------------------------------------------------------------------------


_OP_NAMES = {
    "+": "addition",
    "-": "subtraction",
    "*": "multiplication",
    "neg": "negation",
    "/": "division",
    "%": "modulo",
}


def _check_int(result: int, base: IntType, op: str) -> int:
    if result > base.max:
        raise ArithmeticOverflowError(result, base.describe(), f"integer overflow in {_OP_NAMES[op]}")
    if result < base.min:
        raise ArithmeticOverflowError(result, base.describe(), f"integer underflow in {_OP_NAMES[op]}")
    return result


def _check_float(result: float, operands: tuple[float, ...], base: FloatType, op: str) -> float:
    if math.isnan(result) and not any(math.isnan(x) for x in operands):
        raise ArithmeticOverflowError(result, base.describe(), f"invalid {_OP_NAMES[op]} (NaN)")
    if not math.isinf(result):
        if abs(result) > base.max:
            raise ArithmeticOverflowError(result, base.describe(), f"float overflow in {_OP_NAMES[op]}")
        return result
    if all(math.isfinite(x) for x in operands):
        raise ArithmeticOverflowError(result, base.describe(), f"float overflow in {_OP_NAMES[op]}")
    return result


def checked_add(a: Any, b: Any, base: NumericType) -> Any:
    """``a + b``, raising :class:`ArithmeticOverflowError` instead of overflowing.

    Example::

        checked_add(INT32.max, 1, INT32)   # raises ArithmeticOverflowError
    """
    if isinstance(base, IntType):
        return _check_int(a + b, base, "+")
    a, b = float(a), float(b)
    return _check_float(a + b, (a, b), base, "+")


def checked_sub(a: Any, b: Any, base: NumericType) -> Any:
    if isinstance(base, IntType):
        return _check_int(a - b, base, "-")
    a, b = float(a), float(b)
    return _check_float(a - b, (a, b), base, "-")


def checked_mul(a: Any, b: Any, base: NumericType, underflow: bool = True) -> Any:
    """``a * b``; for floats, a non-zero product that rounds to zero underflows.

    Pass ``underflow=False`` to accept the rounded zero, as bound propagation
    does (its lower corner rounds the same way).
    """
    if isinstance(base, IntType):
        return _check_int(a * b, base, "*")
    a, b = float(a), float(b)
    result = _check_float(a * b, (a, b), base, "*")
    if underflow and result == 0 and a != 0 and b != 0:
        raise ArithmeticOverflowError(result, base.describe(), "float underflow in multiplication")
    return result


def checked_neg(a: Any, base: NumericType) -> Any:
    """``-a``; negating the most negative signed integer overflows."""
    if isinstance(base, IntType):
        return _check_int(-a, base, "neg")
    return -float(a)


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def checked_div(a: Any, b: Any, base: NumericType) -> Any:
    """Division with the base type's semantics.

    Integers truncate toward zero (``-7 / 2 == -3``) and ``min / -1``
    overflows; floats use true division. A zero divisor raises
    :class:`ZeroDivisionError`.
    """
    if b == 0:
        raise ZeroDivisionError(f"division of {a!r} by zero")
    if isinstance(base, IntType):
        return _check_int(_trunc_div(a, b), base, "/")
    a, b = float(a), float(b)
    return _check_float(a / b, (a, b), base, "/")


def checked_mod(a: Any, b: Any, base: NumericType) -> Any:
    """Remainder whose sign follows the dividend (``-7 % 2 == -1``)."""
    if b == 0:
        raise ZeroDivisionError(f"modulo of {a!r} by zero")
    if isinstance(base, IntType):
        return _check_int(a - b * _trunc_div(a, b), base, "%")
    a, b = float(a), float(b)
    return _check_float(math.fmod(a, b), (a, b), base, "%")


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class Op(Enum):
    """Arithmetic operators known to propagation and the preservation table."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    NEG = "neg"

    @property
    def symbol(self) -> str:
        return "-" if self is Op.NEG else self.value

    @property
    def unary(self) -> bool:
        return self is Op.NEG

    def checked(self, a: Any, b: Any, base: NumericType, underflow: bool = True) -> Any:
        """Apply the operator to actual values with checked arithmetic.

        *b* is ignored for :attr:`NEG`; *underflow* only affects float :attr:`MUL`.
        """
        if self is Op.ADD:
            return checked_add(a, b, base)
        if self is Op.SUB:
            return checked_sub(a, b, base)
        if self is Op.MUL:
            return checked_mul(a, b, base, underflow)
        return checked_neg(a, base)

    def raw(self, a: Any, b: Any = None) -> Any:
        """Apply the operator with unbounded semantics (z3 terms included)."""
        if self is Op.ADD:
            return a + b
        if self is Op.SUB:
            return a - b
        if self is Op.MUL:
            return a * b
        return -a
