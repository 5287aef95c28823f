"""Predicates — pure boolean tests that refined values are bound to.

A predicate is an immutable object with structural identity: two
predicates built from the same factory with the same parameters are equal
and hash alike, so they can key the preservation table and parameterize
:class:`~refinery.refined.Refined` classes.

Catalogue
---------
Sign:          ``Positive``, ``Negative``, ``NonNegative``, ``NonPositive``,
               ``Zero``, ``NonZero``
Comparators:   ``GreaterThan(b)``, ``GreaterOrEqual(b)``, ``LessThan(b)``,
               ``LessOrEqual(b)``, ``EqualTo(b)``, ``NotEqualTo(b)``
Ranges:        ``InRange(lo, hi)`` (an :class:`Interval`), ``InOpenRange``,
               ``InHalfOpenRange``
Divisibility:  ``Even``, ``Odd``, ``DivisibleBy(n)``, ``PowerOfTwo``
Containers:    ``Empty``, ``NonEmpty``, ``SizeAtLeast(n)``, ``SizeAtMost(n)``,
               ``SizeExactly(n)``, ``SizeInRange(lo, hi)``, :class:`SizeInterval`
Floating:      ``NotNaN``, ``IsNaN``, ``Finite``, ``IsInf``, ``IsNormal``,
               ``ApproxEqual(center, tolerance)``

Predicates compose with ``&`` (all), ``|`` (any), ``~`` (not) and ``>>``
(implication); see :mod:`refinery.combinators`.
"""

from __future__ import annotations

import logging
import math
import sys
from collections.abc import Callable, Hashable
from typing import Any

import z3

logger = logging.getLogger("refinery")


class Predicate:
    """Base class for all predicates.

    Subclasses implement :meth:`test` and :attr:`key`; optionally
    :meth:`to_z3` when the predicate has a z3 encoding.
    """

    __slots__ = ()

    def test(self, value: Any) -> bool:
        raise NotImplementedError

    @property
    def key(self) -> tuple[Hashable, ...]:
        """Structural identity: ``(kind, *parameters)``."""
        raise NotImplementedError

    def to_z3(self, var: Any) -> Any:
        """Encode the predicate over a z3 variable, or ``None`` if impossible."""
        return None

    def describe(self) -> str:
        return repr(self)

    def __call__(self, value: Any) -> bool:
        return bool(self.test(value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Predicate):
            return NotImplemented
        return self.key == other.key

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        return hash(self.key)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _init(self, **fields: Any) -> None:
        for name, value in fields.items():
            object.__setattr__(self, name, value)

    # Combinator sugar

    def __and__(self, other: Predicate) -> Predicate:
        from .combinators import All

        return All(self, other)

    def __or__(self, other: Predicate) -> Predicate:
        from .combinators import Any as AnyOf

        return AnyOf(self, other)

    def __invert__(self) -> Predicate:
        from .combinators import Not

        return Not(self)

    def __rshift__(self, other: Predicate) -> Predicate:
        from .combinators import If

        return If(self, other)


def holds(pred: Predicate | Callable[[Any], bool], value: Any) -> bool:
    """Evaluate *pred* on *value*, treating a type/arith failure as ``False``.

    A predicate applied to a value of the wrong shape (``len()`` of an int,
    ``%`` of a string, a missing attribute) is a violation, not a crash.
    """
    try:
        return bool(pred(value))
    except (TypeError, ValueError, ArithmeticError, AttributeError):
        return False


# ---------------------------------------------------------------------------
# Named constant predicates
# ---------------------------------------------------------------------------


class NamedPredicate(Predicate):
    """A parameterless catalogue predicate such as ``Positive``."""

    __slots__ = ("name", "_fn", "_z3")

    def __init__(
        self,
        name: str,
        fn: Callable[[Any], bool],
        z3_fn: Callable[[Any], Any] | None = None,
    ) -> None:
        self._init(name=name, _fn=fn, _z3=z3_fn)

    def test(self, value: Any) -> bool:
        return self._fn(value)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return (self.name,)

    def to_z3(self, var: Any) -> Any:
        if self._z3 is None:
            return None
        return self._z3(var)

    def __repr__(self) -> str:
        return self.name


def _int_only(fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """z3 encoder that only applies to integer sorts (``%`` has no Real meaning)."""

    def encode(var: Any) -> Any:
        if not z3.is_int(var):
            return None
        return fn(var)

    return encode


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


Positive = NamedPredicate("Positive", lambda v: v > 0, lambda x: x > 0)
Negative = NamedPredicate("Negative", lambda v: v < 0, lambda x: x < 0)
NonNegative = NamedPredicate("NonNegative", lambda v: v >= 0, lambda x: x >= 0)
NonPositive = NamedPredicate("NonPositive", lambda v: v <= 0, lambda x: x <= 0)
Zero = NamedPredicate("Zero", lambda v: v == 0, lambda x: x == 0)
NonZero = NamedPredicate("NonZero", lambda v: v != 0, lambda x: x != 0)

Even = NamedPredicate("Even", lambda v: v % 2 == 0, _int_only(lambda x: x % 2 == 0))
Odd = NamedPredicate("Odd", lambda v: v % 2 != 0, _int_only(lambda x: x % 2 != 0))
PowerOfTwo = NamedPredicate(
    "PowerOfTwo",
    lambda v: _is_int(v) and v > 0 and (v & (v - 1)) == 0,
)

Empty = NamedPredicate("Empty", lambda v: len(v) == 0)
NonEmpty = NamedPredicate("NonEmpty", lambda v: len(v) > 0)

NotNaN = NamedPredicate("NotNaN", lambda v: not math.isnan(v))
IsNaN = NamedPredicate("IsNaN", lambda v: math.isnan(v))
Finite = NamedPredicate("Finite", lambda v: math.isfinite(v))
IsInf = NamedPredicate("IsInf", lambda v: math.isinf(v))
IsNormal = NamedPredicate(
    "IsNormal",
    lambda v: math.isfinite(v) and abs(v) >= sys.float_info.min,
)
Normalized = NamedPredicate("Normalized", lambda v: -1 <= v <= 1, lambda x: (x >= -1) & (x <= 1))

Always = NamedPredicate("Always", lambda v: True, lambda x: z3.BoolVal(True))
Never = NamedPredicate("Never", lambda v: False, lambda x: z3.BoolVal(False))


# ---------------------------------------------------------------------------
# Curried comparators
# ---------------------------------------------------------------------------


class _Bound(Predicate):
    __slots__ = ("bound",)

    def __init__(self, bound: Any) -> None:
        self._init(bound=bound)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return (type(self).__name__, self.bound)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.bound!r})"


class GreaterThan(_Bound):
    """``v > bound``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value > self.bound

    def to_z3(self, var: Any) -> Any:
        return var > self.bound


class GreaterOrEqual(_Bound):
    """``v >= bound``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value >= self.bound

    def to_z3(self, var: Any) -> Any:
        return var >= self.bound


class LessThan(_Bound):
    """``v < bound``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value < self.bound

    def to_z3(self, var: Any) -> Any:
        return var < self.bound


class LessOrEqual(_Bound):
    """``v <= bound``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value <= self.bound

    def to_z3(self, var: Any) -> Any:
        return var <= self.bound


class EqualTo(_Bound):
    """``v == bound``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value == self.bound

    def to_z3(self, var: Any) -> Any:
        return var == self.bound


class NotEqualTo(_Bound):
    """``v != bound``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value != self.bound

    def to_z3(self, var: Any) -> Any:
        return var != self.bound


class DivisibleBy(_Bound):
    """``v % n == 0``."""

    __slots__ = ()

    def test(self, value: Any) -> bool:
        return value % self.bound == 0

    def to_z3(self, var: Any) -> Any:
        if not z3.is_int(var) or not _is_int(self.bound) or self.bound == 0:
            return None
        return var % self.bound == 0


# ---------------------------------------------------------------------------
# Intervals
# ---------------------------------------------------------------------------


class Interval(Predicate):
    """Closed interval ``[lo, hi]``: the structural shape used by propagation.

    ``hi=None`` leaves the interval unbounded above (it is resolved to the
    base type's maximum when propagated). ``lo > hi`` is accepted and denotes
    the empty set: every value fails the predicate.

    Example::

        Percentage = Interval(0, 100)
        Interval.exact(7)       # [7, 7]
    """

    __slots__ = ("lo", "hi")

    def __init__(self, lo: Any, hi: Any = None) -> None:
        self._init(lo=lo, hi=hi)
        if hi is not None and lo > hi:
            logger.debug("Interval(%r, %r) is empty (lo > hi)", lo, hi)

    @classmethod
    def exact(cls, value: Any) -> Interval:
        return cls(value, value)

    @property
    def bounded(self) -> bool:
        return self.hi is not None

    @property
    def empty(self) -> bool:
        return self.hi is not None and self.lo > self.hi

    def test(self, value: Any) -> bool:
        if self.hi is None:
            return value >= self.lo
        return self.lo <= value <= self.hi

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("Interval", self.lo, self.hi)

    def to_z3(self, var: Any) -> Any:
        if self.hi is None:
            return var >= self.lo
        return z3.And(var >= self.lo, var <= self.hi)

    def __repr__(self) -> str:
        if self.hi is None:
            return f"Interval({self.lo!r})"
        return f"Interval({self.lo!r}, {self.hi!r})"


def InRange(lo: Any, hi: Any) -> Interval:
    """Closed range ``lo <= v <= hi`` (an :class:`Interval`)."""
    return Interval(lo, hi)


class InOpenRange(Predicate):
    """Open range ``lo < v < hi``."""

    __slots__ = ("lo", "hi")

    def __init__(self, lo: Any, hi: Any) -> None:
        self._init(lo=lo, hi=hi)

    def test(self, value: Any) -> bool:
        return self.lo < value < self.hi

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("InOpenRange", self.lo, self.hi)

    def to_z3(self, var: Any) -> Any:
        return z3.And(var > self.lo, var < self.hi)

    def __repr__(self) -> str:
        return f"InOpenRange({self.lo!r}, {self.hi!r})"


class InHalfOpenRange(Predicate):
    """Half-open range ``lo <= v < hi``; the natural shape of an index."""

    __slots__ = ("lo", "hi")

    def __init__(self, lo: Any, hi: Any) -> None:
        self._init(lo=lo, hi=hi)

    def test(self, value: Any) -> bool:
        return self.lo <= value < self.hi

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("InHalfOpenRange", self.lo, self.hi)

    def to_z3(self, var: Any) -> Any:
        return z3.And(var >= self.lo, var < self.hi)

    def __repr__(self) -> str:
        return f"InHalfOpenRange({self.lo!r}, {self.hi!r})"


class SizeInterval(Predicate):
    """Closed interval on ``len(value)``.

    Same shape as :class:`Interval` but only supports membership testing;
    no propagation is defined for sizes.
    """

    __slots__ = ("lo", "hi")

    def __init__(self, lo: int, hi: int | None = None) -> None:
        self._init(lo=lo, hi=hi)

    def test(self, value: Any) -> bool:
        n = len(value)
        if self.hi is None:
            return n >= self.lo
        return self.lo <= n <= self.hi

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("SizeInterval", self.lo, self.hi)

    def __repr__(self) -> str:
        if self.hi is None:
            return f"SizeInterval({self.lo!r})"
        return f"SizeInterval({self.lo!r}, {self.hi!r})"


def SizeAtLeast(n: int) -> SizeInterval:
    return SizeInterval(n)


def SizeAtMost(n: int) -> SizeInterval:
    return SizeInterval(0, n)


def SizeExactly(n: int) -> SizeInterval:
    return SizeInterval(n, n)


def SizeInRange(lo: int, hi: int) -> SizeInterval:
    return SizeInterval(lo, hi)


class ApproxEqual(Predicate):
    """Inclusive absolute tolerance window ``abs(v - center) <= tolerance``."""

    __slots__ = ("center", "tolerance")

    def __init__(self, center: float, tolerance: float) -> None:
        self._init(center=center, tolerance=tolerance)

    def test(self, value: Any) -> bool:
        return abs(value - self.center) <= self.tolerance

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("ApproxEqual", self.center, self.tolerance)

    def to_z3(self, var: Any) -> Any:
        return z3.And(var - self.center <= self.tolerance, self.center - var <= self.tolerance)

    def __repr__(self) -> str:
        return f"ApproxEqual({self.center!r}, {self.tolerance!r})"


class FunctionPredicate(Predicate):
    """A plain callable lifted into a predicate.

    Identity is the callable object itself, so the same function object
    always yields the same predicate.
    """

    __slots__ = ("fn", "name")

    def __init__(self, fn: Callable[[Any], bool], name: str | None = None) -> None:
        self._init(fn=fn, name=name or getattr(fn, "__name__", repr(fn)))

    def test(self, value: Any) -> bool:
        return self.fn(value)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("FunctionPredicate", self.fn)

    def __repr__(self) -> str:
        return self.name


def predicate(fn: Callable[[Any], bool] | Predicate, name: str | None = None) -> Predicate:
    """Lift *fn* into a :class:`Predicate` (predicates are returned as-is).

    Usable as a decorator::

        @predicate
        def is_port(v):
            return 1 <= v <= 65535
    """
    if isinstance(fn, Predicate):
        return fn
    if not callable(fn):
        raise TypeError(f"Expected a callable predicate, got {fn!r}")
    return FunctionPredicate(fn, name)


def is_interval(pred: Any) -> bool:
    """``True`` iff *pred* has interval shape (and can be propagated)."""
    return isinstance(pred, Interval)


def rejects_zero(pred: Predicate) -> bool:
    """``True`` iff every zero (``0``, ``0.0``, ``-0.0``) fails *pred*."""
    return not any(holds(pred, zero) for zero in (0, 0.0, -0.0))
