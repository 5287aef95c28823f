"""Bridge between refinery predicates and Hypothesis property testing.

This module provides:

- ``strategy_for`` — a Hypothesis strategy drawing values that satisfy a
  predicate over a base type
- ``check_preservation`` — sample a preservation rule instead of proving it
- ``prove_or_sample`` — z3 first, Hypothesis when z3 cannot decide

Hypothesis imports are lazy so the rest of refinery does not need it
(raises ImportError with an install hint on use).
"""

from __future__ import annotations

import math
from typing import Any

from .arithmetic import Op
from .engine import ProofCertificate, Status, prove_preservation, rule_subject
from .errors import ArithmeticOverflowError
from .numeric import FloatType, IntType, resolve_base
from .predicates import (
    GreaterOrEqual,
    GreaterThan,
    InHalfOpenRange,
    InOpenRange,
    Interval,
    LessOrEqual,
    LessThan,
    Negative,
    NonNegative,
    NonPositive,
    Positive,
    Predicate,
    SizeInterval,
    Zero,
    holds,
    predicate,
)


def _require_hypothesis() -> Any:
    """Import and return hypothesis.strategies, raising a helpful error if missing."""
    try:
        from hypothesis import strategies

        return strategies
    except ImportError as exc:
        raise ImportError(
            "hypothesis is required for this feature. "
            "Install it with: pip install refinery[hypothesis]"
        ) from exc


# ---------------------------------------------------------------------------
# strategy_for
# ---------------------------------------------------------------------------


def _int_limits(pred: Predicate, lo: int, hi: int) -> tuple[Any, Any]:
    """Narrow ``[lo, hi]`` using the shape of *pred* where it is known."""

    def up(b: Any) -> int:
        return math.ceil(b)

    def down(b: Any) -> int:
        return math.floor(b)

    if isinstance(pred, Interval):
        lo = max(lo, up(pred.lo))
        if pred.hi is not None:
            hi = min(hi, down(pred.hi))
    elif isinstance(pred, InOpenRange):
        lo = max(lo, down(pred.lo) + 1)
        hi = min(hi, up(pred.hi) - 1)
    elif isinstance(pred, InHalfOpenRange):
        lo = max(lo, up(pred.lo))
        hi = min(hi, up(pred.hi) - 1)
    elif isinstance(pred, GreaterThan):
        lo = max(lo, down(pred.bound) + 1)
    elif isinstance(pred, GreaterOrEqual):
        lo = max(lo, up(pred.bound))
    elif isinstance(pred, LessThan):
        hi = min(hi, up(pred.bound) - 1)
    elif isinstance(pred, LessOrEqual):
        hi = min(hi, down(pred.bound))
    elif pred == Positive:
        lo = max(lo, 1)
    elif pred == NonNegative:
        lo = max(lo, 0)
    elif pred == Negative:
        hi = min(hi, -1)
    elif pred == NonPositive:
        hi = min(hi, 0)
    elif pred == Zero:
        lo, hi = max(lo, 0), min(hi, 0)
    return lo, hi


def _float_kwargs(pred: Predicate, base: FloatType) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "min_value": -base.max,
        "max_value": base.max,
        "allow_nan": False,
        "allow_infinity": False,
        "width": 32 if base.name == "float32" else 64,
    }
    if isinstance(pred, Interval):
        kwargs["min_value"] = max(kwargs["min_value"], float(pred.lo))
        if pred.hi is not None:
            kwargs["max_value"] = min(kwargs["max_value"], float(pred.hi))
    elif pred == Positive:
        kwargs["min_value"] = 0.0
        kwargs["exclude_min"] = True
    elif pred == NonNegative:
        kwargs["min_value"] = 0.0
    elif pred == Negative:
        kwargs["max_value"] = 0.0
        kwargs["exclude_max"] = True
    elif pred == NonPositive:
        kwargs["max_value"] = 0.0
    elif pred == Zero:
        kwargs["min_value"] = kwargs["max_value"] = 0.0
    return kwargs


def strategy_for(pred: Any, base: Any = int) -> Any:
    """Build a Hypothesis strategy for values of *base* satisfying *pred*.

    Interval-shaped and sign predicates narrow the drawn range directly;
    any other predicate filters the base strategy.

    Args:
        pred: A predicate or plain callable.
        base: ``int``, ``float``, a numeric descriptor, ``str``, ``list``
            or ``tuple``.

    Returns:
        A ``hypothesis.strategies`` strategy.

    Raises:
        TypeError: If no strategy exists for *base*.
        ImportError: If hypothesis is not installed.

    Example::

        strategy_for(Interval(3, 10), INT32)   # integers in [3, 10]
    """
    st = _require_hypothesis()
    pred = predicate(pred)
    base = resolve_base(base)

    if isinstance(base, IntType):
        lo, hi = _int_limits(pred, base.min, base.max)
        if lo > hi:
            return st.nothing()
        strategy = st.integers(min_value=lo, max_value=hi)
    elif isinstance(base, FloatType):
        kwargs = _float_kwargs(pred, base)
        if kwargs["min_value"] > kwargs["max_value"]:
            return st.nothing()
        strategy = st.floats(**kwargs)
    elif base in (str, list, tuple):
        size: dict[str, int] = {}
        if isinstance(pred, SizeInterval):
            size["min_size"] = pred.lo
            if pred.hi is not None:
                size["max_size"] = pred.hi
        if base is str:
            strategy = st.text(**size)
        elif base is list:
            strategy = st.lists(st.integers(), **size)
        else:
            strategy = st.lists(st.integers(), **size).map(tuple)
    else:
        raise TypeError(f"No strategy for base {base!r}. Supported: numeric types, str, list, tuple.")

    return strategy.filter(lambda v, p=pred: holds(p, v))


# ---------------------------------------------------------------------------
# check_preservation
# ---------------------------------------------------------------------------


def check_preservation(
    lhs: Any,
    op: Op,
    rhs: Any = None,
    result: Any = None,
    base: Any = int,
    max_examples: int = 500,
) -> ProofCertificate:
    """Sample a preservation rule with Hypothesis.

    Operands are drawn with :func:`strategy_for`; examples whose actual
    result overflows the base are discarded (checked arithmetic would
    reject them).

    Returns:
        A :class:`~refinery.engine.ProofCertificate` with status ``SAMPLED``
        (no counterexample found), ``COUNTEREXAMPLE``, or ``UNKNOWN`` (too
        few valid examples).
    """
    from hypothesis import HealthCheck, assume, given, settings
    from hypothesis import strategies as st
    from hypothesis.errors import Unsatisfiable

    lhs = predicate(lhs)
    rhs = None if op.unary else (lhs if rhs is None else predicate(rhs))
    result = lhs if result is None else predicate(result)
    base = resolve_base(base)
    subject = rule_subject(lhs, op, rhs, result, base)

    left = strategy_for(lhs, base)
    right = st.none() if op.unary else strategy_for(rhs, base)

    counter: dict[str, int] = {"n": 0}
    found: dict[str, Any] = {"ce": None}

    @settings(
        max_examples=max_examples,
        suppress_health_check=list(HealthCheck),
        deadline=None,
        database=None,
    )
    @given(a=left, b=right)
    def _test(a: Any, b: Any) -> None:
        try:
            out = op.checked(a, b, base)
        except ArithmeticOverflowError:
            assume(False)
            return
        counter["n"] += 1
        if not holds(result, out):
            ce = {"a": a, "__result__": out}
            if not op.unary:
                ce["b"] = b
            found["ce"] = ce
            raise AssertionError(f"{subject}: {ce}")

    try:
        _test()
    except AssertionError:
        pass
    except Unsatisfiable:
        return ProofCertificate(subject, Status.UNKNOWN, message="no valid examples")

    if found["ce"] is not None:
        return ProofCertificate(
            subject,
            Status.COUNTEREXAMPLE,
            counterexample=found["ce"],
            message="found by hypothesis",
        )
    return ProofCertificate(
        subject,
        Status.SAMPLED,
        message=f"{counter['n']} examples passed",
    )


def prove_or_sample(
    lhs: Any,
    op: Op,
    rhs: Any = None,
    result: Any = None,
    base: Any = int,
    max_examples: int = 500,
) -> ProofCertificate:
    """Prove a rule with z3, falling back to Hypothesis if z3 cannot decide."""
    lhs = predicate(lhs)
    rhs_p = None if op.unary else (lhs if rhs is None else predicate(rhs))
    result_p = lhs if result is None else predicate(result)
    cert = prove_preservation(lhs, op, rhs_p, result_p, resolve_base(base))
    if cert.status in (Status.SKIPPED, Status.UNKNOWN):
        return check_preservation(lhs, op, rhs_p, result_p, base, max_examples)
    return cert
