"""Proof engine — z3 proofs for preservation rules and static construction.

Two obligations are discharged here:

1. **Preservation**: does an operator keep a predicate? For a rule
   ``lhs op rhs -> result`` the engine checks that

       lhs(a) ∧ rhs(b) ∧ in_range(a, b, a op b)  →  result(a op b)

   is valid by asking z3 whether its negation is UNSAT. Integer bases use
   z3 ``Int`` with the base type's range as assumptions (checked arithmetic
   rejects out-of-range results, so only in-range results need to satisfy
   the conclusion); float bases use ``Real``.
2. **Static construction**: does a constant satisfy its predicate? Decided
   by z3 for integer constants with an encodable predicate, by evaluation
   otherwise.

Global configuration
--------------------
Use :func:`configure` to set defaults for every subsequent call::

    from refinery import configure
    configure(timeout_ms=10_000, default_int="int32")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import z3

from .arithmetic import Op
from .numeric import NUMERIC_TYPES, IntType, base_name, is_numeric
from .predicates import Predicate, holds

logger = logging.getLogger("refinery")


# ---------------------------------------------------------------------------
# Global configuration
# ---------------------------------------------------------------------------

_DEFAULTS: dict[str, Any] = {
    "timeout_ms": 5000,
    "log_level": "WARNING",
    "default_int": "int64",
    "prove_rules": True,
    "raise_on_failure": True,
}

_config: dict[str, Any] = dict(_DEFAULTS)


def configure(**kwargs: Any) -> None:
    """Set global defaults.

    Supported keys:

    - ``timeout_ms`` (int): z3 solver timeout in milliseconds (default 5000).
    - ``log_level`` (str): level of the ``refinery`` logger (default ``"WARNING"``).
    - ``default_int`` (str): numeric type that plain ``int`` maps to
      (default ``"int64"``).
    - ``prove_rules`` (bool): prove preservation rules when they are
      registered (default ``True``).
    - ``raise_on_failure`` (bool): raise
      :class:`~refinery.errors.PreservationError` when a rule is disproved;
      otherwise log a warning and drop the rule (default ``True``).

    Args:
        **kwargs: Key-value pairs to update in the global config.

    Raises:
        ValueError: If an unknown key or an unknown ``default_int`` is given.
    """
    unknown = set(kwargs) - set(_config)
    if unknown:
        raise ValueError(f"Unknown configure() keys: {sorted(unknown)}")
    if "default_int" in kwargs:
        name = str(kwargs["default_int"]).lower()
        if not isinstance(NUMERIC_TYPES.get(name), IntType):
            raise ValueError(f"default_int must name an integer type, got {kwargs['default_int']!r}")
        kwargs["default_int"] = name
    _config.update(kwargs)

    if "log_level" in kwargs:
        logging.getLogger("refinery").setLevel(getattr(logging, kwargs["log_level"], logging.WARNING))


def reset_config() -> None:
    """Restore every configuration key to its default."""
    _config.clear()
    _config.update(_DEFAULTS)


# ---------------------------------------------------------------------------
# Status + ProofCertificate
# ---------------------------------------------------------------------------


class Status(Enum):
    """Proof result status."""

    VERIFIED = "verified"
    COUNTEREXAMPLE = "counterexample"
    UNKNOWN = "unknown"
    SKIPPED = "skipped"
    SAMPLED = "sampled"


@dataclass(frozen=True)
class ProofCertificate:
    """Immutable record of a proof attempt.

    Attributes:
        subject: What was proved, e.g. ``"Positive + Positive -> Positive (int64)"``.
        status: The outcome (see :class:`Status`).
        assumptions: z3 renderings of the hypotheses.
        conclusion: z3 rendering of the goal.
        counterexample: Values that refute the goal, or ``None``.
        message: Human-readable explanation (skip reason, etc.).
        solver_time_ms: Wall-clock time spent in z3.
        z3_version: The z3 version string used.
    """

    subject: str
    status: Status
    assumptions: tuple[str, ...] = ()
    conclusion: str = ""
    counterexample: dict[str, Any] | None = None
    message: str = ""
    solver_time_ms: float = 0.0
    z3_version: str = ""

    @property
    def verified(self) -> bool:
        """``True`` iff the status is :attr:`Status.VERIFIED`."""
        return self.status == Status.VERIFIED

    @property
    def refuted(self) -> bool:
        return self.status == Status.COUNTEREXAMPLE

    def __str__(self) -> str:
        sym = {"verified": "Q.E.D.", "counterexample": "DISPROVED", "unknown": "?"}
        tag = sym.get(self.status.value, self.status.value.upper())
        out = f"[{tag}] {self.subject}"
        if self.counterexample:
            out += f" — counterexample: {self.counterexample}"
        if self.message:
            out += f" ({self.message})"
        return out

    def to_json(self) -> dict[str, Any]:
        """Serialize the certificate to a JSON-compatible dict.

        Counterexample values that are not JSON-native are coerced to strings.
        """
        ce: dict[str, Any] | None = None
        if self.counterexample is not None:
            ce = {}
            for k, v in self.counterexample.items():
                if isinstance(v, (int, float, bool, str, type(None))):
                    ce[k] = v
                else:
                    ce[k] = str(v)
        return {
            "subject": self.subject,
            "status": self.status.value,
            "assumptions": list(self.assumptions),
            "conclusion": self.conclusion,
            "counterexample": ce,
            "message": self.message,
            "solver_time_ms": self.solver_time_ms,
            "z3_version": self.z3_version,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ProofCertificate:
        """Inverse of :meth:`to_json`.

        Raises:
            KeyError: If ``subject`` or ``status`` is missing.
            ValueError: If ``status`` is not a valid :class:`Status`.
        """
        return cls(
            subject=data["subject"],
            status=Status(data["status"]),
            assumptions=tuple(data.get("assumptions", [])),
            conclusion=data.get("conclusion", ""),
            counterexample=data.get("counterexample"),
            message=data.get("message", ""),
            solver_time_ms=float(data.get("solver_time_ms", 0.0)),
            z3_version=data.get("z3_version", ""),
        )


# ---------------------------------------------------------------------------
# Proof cache (keyed by structural predicate identity)
# ---------------------------------------------------------------------------

_proof_cache: dict[tuple[Any, ...], ProofCertificate] = {}


def clear_cache() -> None:
    """Clear the global proof cache."""
    _proof_cache.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _encode(pred: Predicate, var: Any) -> Any:
    """z3 encoding of *pred* over *var*, or ``None`` if it has none."""
    try:
        enc = pred.to_z3(var)
    except (z3.Z3Exception, TypeError, ValueError, OverflowError):
        return None
    if enc is None or not isinstance(enc, z3.BoolRef):
        return None
    return enc


def _make_var(name: str, base: Any) -> Any:
    if isinstance(base, IntType):
        return z3.Int(name)
    return z3.Real(name)


def _z3_val_to_python(val: Any) -> int | float | bool | str:
    """Convert a z3 value to a Python scalar."""
    try:
        if z3.is_int_value(val):
            return val.as_long()
        if z3.is_rational_value(val):
            return float(val.as_fraction())
        if z3.is_true(val):
            return True
        if z3.is_false(val):
            return False
    except (AttributeError, ValueError, ArithmeticError, OverflowError):
        pass
    return str(val)


def rule_subject(lhs: Predicate, op: Op, rhs: Predicate | None, result: Predicate, base: Any) -> str:
    if op.unary:
        return f"-{lhs!r} -> {result!r} ({base_name(base)})"
    return f"{lhs!r} {op.symbol} {rhs!r} -> {result!r} ({base_name(base)})"


# ---------------------------------------------------------------------------
# Preservation proofs
# ---------------------------------------------------------------------------


def prove_preservation(
    lhs: Predicate,
    op: Op,
    rhs: Predicate | None,
    result: Predicate,
    base: Any,
    timeout_ms: int | None = None,
) -> ProofCertificate:
    """Prove that ``op`` maps operands satisfying *lhs*/*rhs* into *result*.

    Args:
        lhs: Predicate of the left (or only) operand.
        op: The operator.
        rhs: Predicate of the right operand (ignored for :attr:`Op.NEG`).
        result: Predicate claimed for the result.
        base: A numeric base type descriptor.
        timeout_ms: z3 timeout; defaults to the configured ``timeout_ms``.

    Returns:
        A :class:`ProofCertificate` with status ``VERIFIED``,
        ``COUNTEREXAMPLE``, ``UNKNOWN`` or ``SKIPPED`` (no z3 encoding).
    """
    if timeout_ms is None:
        timeout_ms = int(_config["timeout_ms"])
    subject = rule_subject(lhs, op, rhs, result, base)

    if not is_numeric(base):
        return ProofCertificate(subject, Status.SKIPPED, message=f"{base_name(base)} is not numeric")

    cache_key = ("preserve", lhs.key, op, None if op.unary else rhs.key, result.key, base)  # type: ignore[union-attr]
    if cache_key in _proof_cache:
        logger.debug("cache hit: %s", subject)
        return _proof_cache[cache_key]

    a = _make_var("a", base)
    b = _make_var("b", base)
    out = op.raw(a, b)

    hyps = [_encode(lhs, a)]
    if not op.unary:
        hyps.append(_encode(rhs, b))  # type: ignore[arg-type]
    goal = _encode(result, out)
    if goal is None or any(h is None for h in hyps):
        cert = ProofCertificate(subject, Status.SKIPPED, message="predicate has no z3 encoding")
        _proof_cache[cache_key] = cert
        return cert

    if isinstance(base, IntType):
        operands = [a] if op.unary else [a, b]
        for v in operands + [out]:
            hyps.append(z3.And(v >= base.min, v <= base.max))

    s = z3.Solver()
    s.set("timeout", timeout_ms)
    for h in hyps:
        s.add(h)
    s.add(z3.Not(goal))

    t0 = time.monotonic()
    check = s.check()
    elapsed = (time.monotonic() - t0) * 1000

    assumptions = tuple(str(h) for h in hyps)
    z3_ver = z3.get_version_string()
    if check == z3.unsat:
        cert = ProofCertificate(
            subject,
            Status.VERIFIED,
            assumptions=assumptions,
            conclusion=str(goal),
            solver_time_ms=elapsed,
            z3_version=z3_ver,
        )
    elif check == z3.sat:
        model = s.model()
        ce = {"a": _z3_val_to_python(model.eval(a, model_completion=True))}
        if not op.unary:
            ce["b"] = _z3_val_to_python(model.eval(b, model_completion=True))
        ce["__result__"] = _z3_val_to_python(model.eval(out, model_completion=True))
        cert = ProofCertificate(
            subject,
            Status.COUNTEREXAMPLE,
            assumptions=assumptions,
            conclusion=str(goal),
            counterexample=ce,
            solver_time_ms=elapsed,
            z3_version=z3_ver,
        )
    else:
        cert = ProofCertificate(
            subject,
            Status.UNKNOWN,
            assumptions=assumptions,
            conclusion=str(goal),
            message=f"z3 returned unknown (timeout {timeout_ms}ms?)",
            solver_time_ms=elapsed,
            z3_version=z3_ver,
        )

    _proof_cache[cache_key] = cert
    return cert


# ---------------------------------------------------------------------------
# Static construction proofs
# ---------------------------------------------------------------------------


def prove_value(pred: Predicate, value: Any, base: Any = None) -> ProofCertificate:
    """Decide ``pred(value)`` for a constant.

    Integer constants with an encodable predicate are decided by z3; every
    other constant is decided by evaluating the predicate. In both cases the
    certificate is ``VERIFIED`` or ``COUNTEREXAMPLE``.
    """
    subject = f"{value!r} satisfies {pred!r}"
    if base is not None and is_numeric(base) and not base.contains(value):
        return ProofCertificate(
            subject,
            Status.COUNTEREXAMPLE,
            counterexample={"value": value},
            message=f"outside {base.describe()}",
        )

    if isinstance(value, int) and not isinstance(value, bool):
        v = z3.Int("v")
        enc = _encode(pred, v)
        if enc is not None:
            s = z3.Solver()
            s.set("timeout", int(_config["timeout_ms"]))
            s.add(v == value)
            s.add(z3.Not(enc))
            t0 = time.monotonic()
            check = s.check()
            elapsed = (time.monotonic() - t0) * 1000
            if check == z3.unsat:
                return ProofCertificate(
                    subject,
                    Status.VERIFIED,
                    assumptions=(f"v == {value}",),
                    conclusion=str(enc),
                    solver_time_ms=elapsed,
                    z3_version=z3.get_version_string(),
                )
            if check == z3.sat:
                return ProofCertificate(
                    subject,
                    Status.COUNTEREXAMPLE,
                    assumptions=(f"v == {value}",),
                    conclusion=str(enc),
                    counterexample={"value": value},
                    solver_time_ms=elapsed,
                    z3_version=z3.get_version_string(),
                )
            logger.debug("z3 undecided on %s, evaluating", subject)

    if holds(pred, value):
        return ProofCertificate(subject, Status.VERIFIED, message="decided by evaluation")
    return ProofCertificate(
        subject,
        Status.COUNTEREXAMPLE,
        counterexample={"value": value},
        message="decided by evaluation",
    )
