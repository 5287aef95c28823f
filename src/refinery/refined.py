"""The refined-value wrapper.

A refined value is a raw value bound to a predicate that holds for the
wrapper's whole lifetime. The predicate lives on the class, so a refined
class plays the role of a type::

    from refinery import Refined
    from refinery.predicates import Positive, Interval

    PositiveInt = Refined[Positive, int]
    PositiveInt(42)                 # runtime check
    PositiveInt(-1)                 # raises RefinementError
    PositiveInt.try_refine(-1)      # None
    PositiveInt.assume_valid(7)     # trusted, no check
    ANSWER = PositiveInt.static(42) # proved at import time

Construction disciplines
------------------------
- **runtime check** — ``Cls(value)``; raises :class:`RefinementError`.
- **try** — ``Cls.try_refine(value)``; returns ``None`` on violation.
- **trusted bypass** — ``Cls.assume_valid(value)``; no check. Passing a
  value that violates the predicate breaks every guarantee built on it.
- **static proof** — ``Cls.static(value)``; only for immutable constants,
  decided by the proof engine, raises :class:`StaticProofError`. Meant for
  module scope so a failure stops the import.

Arithmetic
----------
``+ - *`` on two refined values (same base) dispatch in order:

1. both predicates are intervals → propagated interval, checked op, trusted;
2. a preservation rule holds over the operands' base → checked op, trusted
   with the rule's result (float results are checked once for rounding);
3. same predicate → checked op, re-verified (the result may be ``None``);
4. otherwise → :class:`TypeError`.

Unary ``-`` follows the same order. ``/`` and ``%`` need a refined divisor
whose predicate rejects zero and return raw values.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator
from typing import Any, ClassVar

from .arithmetic import Op, checked_add, checked_div, checked_mod, checked_mul, checked_neg, checked_sub
from .engine import ProofCertificate, prove_value
from .errors import RefinementError, StaticProofError
from .interval import propagate
from .numeric import FloatType, base_name, is_numeric, resolve_base
from .predicates import (
    Finite,
    Interval,
    InHalfOpenRange,
    Negative,
    NonEmpty,
    NonNegative,
    NonZero,
    Positive,
    Predicate,
    holds,
    is_interval,
    predicate,
    rejects_zero,
)
from .preservation import PreservationTable, default_table

logger = logging.getLogger("refinery")

_IMMUTABLE = (int, float, complex, str, bytes, tuple, frozenset, type(None))

# classes made for propagated intervals die with their last value
_classes: weakref.WeakValueDictionary[tuple[Any, Any], type[Refined]] = weakref.WeakValueDictionary()


def _infer_base(value: Any) -> Any:
    if isinstance(value, bool):
        return bool
    if isinstance(value, int):
        return int
    if isinstance(value, float):
        return float
    return type(value)


class Refined:
    """A value guaranteed to satisfy ``type(self).predicate``.

    Do not instantiate ``Refined`` directly; specialize it with
    :meth:`of` or ``Refined[predicate, base]``.
    """

    __slots__ = ("_value", "_proof")

    predicate: ClassVar[Predicate]
    base: ClassVar[Any]

    # ------------------------------------------------------------------
    # Specialization
    # ------------------------------------------------------------------

    @classmethod
    def of(cls, pred: Any, base: Any = int) -> type[Refined]:
        """Return the refined class for *pred* over *base* (cached).

        Args:
            pred: A :class:`~refinery.predicates.Predicate` or plain callable.
            base: ``int``, ``float``, a numeric descriptor such as
                :data:`~refinery.numeric.INT32`, or any other type for
                non-numeric values (``str``, ``list``, ...).
        """
        pred = predicate(pred)
        resolved = resolve_base(base)
        key = (pred, resolved)
        existing = _classes.get(key)
        if existing is not None:
            return existing
        name = f"Refined[{pred!r}, {base_name(resolved)}]"
        new = type(name, (Refined,), {"__slots__": (), "predicate": pred, "base": resolved})
        return _classes.setdefault(key, new)

    def __class_getitem__(cls, params: Any) -> type[Refined]:
        if not isinstance(params, tuple):
            return cls.of(params)
        first, second = params
        if isinstance(first, Predicate) or (callable(first) and not isinstance(first, type)):
            return cls.of(first, second)
        return cls.of(second, first)

    @classmethod
    def describe(cls) -> str:
        return f"{cls.predicate!r} ({base_name(cls.base)})"

    # ------------------------------------------------------------------
    # Construction disciplines
    # ------------------------------------------------------------------

    def __init__(self, value: Any) -> None:
        cls = type(self)
        if cls is Refined:
            raise TypeError("Refined must be specialized: use Refined.of(pred, base)")
        value = cls._normalize(value)
        if not cls.is_valid(value):
            raise RefinementError(value, cls.describe())
        object.__setattr__(self, "_value", value)

    @classmethod
    def _normalize(cls, value: Any) -> Any:
        if isinstance(cls.base, FloatType) and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        """``True`` iff *value* fits the base and satisfies the predicate."""
        base = cls.base
        if is_numeric(base):
            if not base.contains(value):
                return False
        elif isinstance(base, type) and not isinstance(value, base):
            return False
        return holds(cls.predicate, value)

    @classmethod
    def try_refine(cls, value: Any) -> Refined | None:
        """Runtime check that returns ``None`` instead of raising."""
        value = cls._normalize(value)
        if not cls.is_valid(value):
            return None
        return cls._trusted(value)

    @classmethod
    def assume_valid(cls, value: Any) -> Refined:
        """Trusted bypass: wrap *value* without checking the predicate."""
        logger.debug("assume_valid %s for %r", cls.describe(), value)
        return cls._trusted(cls._normalize(value))

    @classmethod
    def _trusted(cls, value: Any) -> Refined:
        obj = object.__new__(cls)
        object.__setattr__(obj, "_value", value)
        return obj

    @classmethod
    def static(cls, value: Any) -> Refined:
        """Static-proof construction for an immutable constant.

        The certificate is available as :attr:`proof`.

        Raises:
            TypeError: If *value* is not an immutable constant.
            StaticProofError: If the predicate cannot be established.
        """
        if not isinstance(value, _IMMUTABLE):
            raise TypeError(f"static construction needs an immutable constant, got {type(value).__name__}")
        value = cls._normalize(value)
        base = cls.base
        if not is_numeric(base) and isinstance(base, type) and not isinstance(value, base):
            raise TypeError(f"{value!r} is not a {base.__name__}")
        cert = prove_value(cls.predicate, value, base if is_numeric(base) else None)
        if not cert.verified:
            raise StaticProofError(value, cls.describe(), cert)
        obj = cls._trusted(value)
        object.__setattr__(obj, "_proof", cert)
        return obj

    # ------------------------------------------------------------------
    # Immutability and access
    # ------------------------------------------------------------------

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __copy__(self) -> Refined:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> Refined:
        return self

    @property
    def value(self) -> Any:
        return self._value

    def get(self) -> Any:
        return self._value

    @property
    def proof(self) -> ProofCertificate | None:
        """Certificate of a static construction, ``None`` otherwise."""
        return getattr(self, "_proof", None)

    def __int__(self) -> int:
        return int(self._value)

    def __float__(self) -> float:
        return float(self._value)

    def __index__(self) -> int:
        if isinstance(self._value, bool) or not isinstance(self._value, int):
            raise TypeError(f"{type(self).__name__} does not wrap an integer")
        return self._value

    def __bool__(self) -> bool:
        return bool(self._value)

    def __len__(self) -> int:
        return len(self._value)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._value)

    def __contains__(self, item: Any) -> bool:
        return item in self._value

    def __getitem__(self, index: Any) -> Any:
        return self._value[index]

    def __format__(self, spec: str) -> str:
        return format(self._value, spec)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __str__(self) -> str:
        return str(self._value)

    # ------------------------------------------------------------------
    # Comparisons (by value)
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        return bool(self._value == _raw(other))

    def __ne__(self, other: object) -> bool:
        return bool(self._value != _raw(other))

    def __lt__(self, other: Any) -> bool:
        return bool(self._value < _raw(other))

    def __le__(self, other: Any) -> bool:
        return bool(self._value <= _raw(other))

    def __gt__(self, other: Any) -> bool:
        return bool(self._value > _raw(other))

    def __ge__(self, other: Any) -> bool:
        return bool(self._value >= _raw(other))

    def __hash__(self) -> int:
        return hash(self._value)

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _binary(self, other: Any, op: Op, reflected: bool = False) -> Any:
        if isinstance(other, Refined):
            if reflected:
                return refined_binop(other, self, op)
            return refined_binop(self, other, op)
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            if reflected:
                return op.raw(other, self._value)
            return op.raw(self._value, other)
        return NotImplemented

    def __add__(self, other: Any) -> Any:
        return self._binary(other, Op.ADD)

    def __radd__(self, other: Any) -> Any:
        return self._binary(other, Op.ADD, reflected=True)

    def __sub__(self, other: Any) -> Any:
        return self._binary(other, Op.SUB)

    def __rsub__(self, other: Any) -> Any:
        return self._binary(other, Op.SUB, reflected=True)

    def __mul__(self, other: Any) -> Any:
        return self._binary(other, Op.MUL)

    def __rmul__(self, other: Any) -> Any:
        return self._binary(other, Op.MUL, reflected=True)

    def __neg__(self) -> Refined | None:
        return refined_neg(self)

    def __pos__(self) -> Refined:
        return self

    def __abs__(self) -> Refined:
        return refined_abs(self)

    def __truediv__(self, other: Any) -> Any:
        return safe_divide(self, other)

    def __rtruediv__(self, other: Any) -> Any:
        return safe_divide(other, self)

    def __mod__(self, other: Any) -> Any:
        return safe_modulo(self, other)

    def __rmod__(self, other: Any) -> Any:
        return safe_modulo(other, self)


def _raw(value: Any) -> Any:
    return value._value if isinstance(value, Refined) else value


def _numeric_base(*operands: Refined) -> Any:
    base = operands[0].base
    for operand in operands[1:]:
        if operand.base != base:
            raise TypeError(f"cannot mix bases {base_name(base)} and {base_name(operand.base)}")
    if not is_numeric(base):
        raise TypeError(f"arithmetic is not defined on {base_name(base)} values")
    return base


# ---------------------------------------------------------------------------
# Operator dispatch
# ---------------------------------------------------------------------------


def refined_binop(
    lhs: Refined,
    rhs: Refined,
    op: Op,
    table: PreservationTable | None = None,
) -> Refined | None:
    """Apply a binary *op* to two refined values.

    Args:
        lhs: Left operand.
        rhs: Right operand (same base as *lhs*).
        op: :attr:`Op.ADD`, :attr:`Op.SUB` or :attr:`Op.MUL`.
        table: Preservation table; defaults to :func:`default_table`.

    Returns:
        A refined result, or ``None`` when the result had to be re-verified
        against a shared predicate and failed.

    Raises:
        ArithmeticOverflowError: If the actual result leaves the base range.
        TypeError: If the bases differ, are not numeric, or no strategy
            relates the two predicates.
        RefinementError: If a float result, rounded, misses the predicate a
            rule over two different predicates promised.
    """
    if op.unary:
        raise TypeError("use refined_neg for unary negation")
    base = _numeric_base(lhs, rhs)
    lp, rp = lhs.predicate, rhs.predicate

    if is_interval(lp) and is_interval(rp):
        result_pred = propagate(op, lp, rp, base)
        value = op.checked(lhs._value, rhs._value, base, underflow=False)
        return Refined.of(result_pred, base)._trusted(value)

    if table is None:
        table = default_table()
    guaranteed = table.guarantee(lp, op, rp, base)
    if guaranteed is None and lp != rp:
        raise TypeError(f"no refinement rule for {lp!r} {op.symbol} {rp!r} over {base_name(base)}")

    value = op.checked(lhs._value, rhs._value, base)
    if guaranteed is not None:
        result = _by_rule(guaranteed, value, base)
        if result is not None:
            return result
        if lp != rp:
            raise RefinementError(value, Refined.of(guaranteed, base).describe())
    return type(lhs).try_refine(value)


def refined_neg(x: Refined, table: PreservationTable | None = None) -> Refined | None:
    """Negate a refined value (interval → rule → re-verify)."""
    base = _numeric_base(x)
    p = x.predicate
    if is_interval(p):
        result_pred = propagate(Op.NEG, p, None, base)
        return Refined.of(result_pred, base)._trusted(checked_neg(x._value, base))
    if table is None:
        table = default_table()
    guaranteed = table.guarantee(p, Op.NEG, None, base)
    value = checked_neg(x._value, base)
    if guaranteed is not None:
        result = _by_rule(guaranteed, value, base)
        if result is not None:
            return result
    return type(x).try_refine(value)


def _by_rule(guaranteed: Predicate, value: Any, base: Any) -> Refined | None:
    # float rules are proved over the reals, which do not round
    if isinstance(base, FloatType) and not holds(guaranteed, value):
        logger.debug("%r fails %r after rounding", value, guaranteed)
        return None
    return Refined.of(guaranteed, base)._trusted(value)


# ---------------------------------------------------------------------------
# Division
# ---------------------------------------------------------------------------


def _divisor(denominator: Any, what: str) -> Refined:
    if not isinstance(denominator, Refined) or not rejects_zero(denominator.predicate):
        raise TypeError(f"{what} needs a refined divisor whose predicate excludes zero, got {denominator!r}")
    return denominator


def _division_base(numerator: Any, d: Refined) -> Any:
    if isinstance(numerator, Refined):
        return _numeric_base(numerator, d)
    base = _numeric_base(d)
    if not base.contains(numerator):
        raise RefinementError(numerator, base.describe())
    return base


def safe_divide(numerator: Any, denominator: Refined) -> Any:
    """Divide by a refined divisor that cannot be zero.

    The quotient carries no refinement. Integer bases truncate toward zero.
    A raw numerator must belong to the divisor's base.

    Example::

        safe_divide(10, NonZeroInt(2))   # 5
    """
    d = _divisor(denominator, "division")
    return checked_div(_raw(numerator), d._value, _division_base(numerator, d))


def safe_modulo(numerator: Any, divisor: Refined) -> Any:
    """Remainder by a refined divisor that cannot be zero."""
    d = _divisor(divisor, "modulo")
    return checked_mod(_raw(numerator), d._value, _division_base(numerator, d))


# ---------------------------------------------------------------------------
# Operations with known result refinements
# ---------------------------------------------------------------------------


def _same_kind(*operands: Refined) -> type[Refined]:
    cls = type(operands[0])
    for operand in operands[1:]:
        if operand.predicate != cls.predicate or operand.base != cls.base:
            raise TypeError(f"expected {cls.describe()}, got {type(operand).describe()}")
    return cls


def refined_min(a: Refined, b: Refined) -> Refined:
    cls = _same_kind(a, b)
    return cls._trusted(a._value if a._value < b._value else b._value)


def refined_max(a: Refined, b: Refined) -> Refined:
    cls = _same_kind(a, b)
    return cls._trusted(a._value if a._value > b._value else b._value)


def refined_clamp(value: Refined, lo: Refined, hi: Refined) -> Refined:
    """Clamp *value* to ``[lo, hi]``; the result is one of the three inputs."""
    cls = _same_kind(value, lo, hi)
    v = value._value
    if v < lo._value:
        v = lo._value
    elif v > hi._value:
        v = hi._value
    return cls._trusted(v)


def _non_negative(value: Any, base: Any) -> Refined:
    cls = Refined.of(NonNegative, base)
    # NaN in, NaN out: not non-negative
    if value != value:
        raise RefinementError(value, cls.describe())
    return cls._trusted(value)


def refined_abs(x: Any, base: Any = None) -> Refined:
    """``abs(x)`` as a ``NonNegative`` refined value (checked)."""
    if isinstance(x, Refined):
        base = _numeric_base(x)
    else:
        base = resolve_base(_infer_base(x) if base is None else base)
    v = _raw(x)
    return _non_negative(checked_neg(v, base) if v < 0 else v, base)


def square(x: Any, base: Any = None) -> Refined:
    """``x * x`` as a ``NonNegative`` refined value (checked)."""
    if isinstance(x, Refined):
        base = _numeric_base(x)
    else:
        base = resolve_base(_infer_base(x) if base is None else base)
    v = _raw(x)
    return _non_negative(checked_mul(v, v, base, underflow=False), base)


def increment(x: Refined) -> Refined | None:
    return type(x).try_refine(checked_add(x._value, 1, _numeric_base(x)))


def decrement(x: Refined) -> Refined | None:
    return type(x).try_refine(checked_sub(x._value, 1, _numeric_base(x)))


# ---------------------------------------------------------------------------
# Functional constructors
# ---------------------------------------------------------------------------


def refine(pred: Any, value: Any, base: Any = None) -> Refined:
    """Runtime-check construction; raises :class:`RefinementError`."""
    return Refined.of(pred, _infer_base(value) if base is None else base)(value)


def try_refine(pred: Any, value: Any, base: Any = None) -> Refined | None:
    """Runtime-check construction; ``None`` on violation.

    ``try_refine(P, v) is not None`` exactly when ``P(v)`` holds (and *v*
    fits the base).
    """
    return Refined.of(pred, _infer_base(value) if base is None else base).try_refine(value)


def assume_valid(pred: Any, value: Any, base: Any = None) -> Refined:
    """Trusted-bypass construction; no check is performed."""
    return Refined.of(pred, _infer_base(value) if base is None else base).assume_valid(value)


def static_refine(pred: Any, value: Any, base: Any = None) -> Refined:
    """Static-proof construction; raises :class:`StaticProofError`."""
    return Refined.of(pred, _infer_base(value) if base is None else base).static(value)


# ---------------------------------------------------------------------------
# Common refined types
# ---------------------------------------------------------------------------

PositiveInt = Refined.of(Positive, int)
NegativeInt = Refined.of(Negative, int)
NonNegativeInt = Refined.of(NonNegative, int)
NonZeroInt = Refined.of(NonZero, int)
PositiveFloat = Refined.of(Positive, float)
NonNegativeFloat = Refined.of(NonNegative, float)
FiniteFloat = Refined.of(Finite, float)
Percentage = Refined.of(Interval(0, 100), int)
Probability = Refined.of(Interval(0.0, 1.0), float)
ByteValue = Refined.of(Interval(0, 255), int)
PortNumber = Refined.of(Interval(1, 65535), int)
NonEmptyList = Refined.of(NonEmpty, list)
NonEmptyStr = Refined.of(NonEmpty, str)


def bounded_index(n: int) -> type[Refined]:
    """Refined class of valid indices into a sequence of length *n*."""
    return Refined.of(InHalfOpenRange(0, n), int)
