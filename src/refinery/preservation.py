"""The preservation table — which operators are known to keep which predicates.

Deciding whether an arbitrary operator preserves an arbitrary predicate is
out of reach, so the decision is reduced to a finite, explicit table of
rules ``lhs op rhs -> result``. When a rule matches, the result of the
operation is constructed without re-verification.

Rules are programmer-supplied. By default each rule is proved with z3 when
registered (see :func:`refinery.engine.prove_preservation`); a disproved rule
is rejected. Rules whose predicates have no z3 encoding are accepted on the
programmer's word and logged.

Example::

    from refinery import Op, default_table
    from refinery.predicates import Even

    default_table().register(Even, Op.ADD)   # Even + Even -> Even
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from .arithmetic import Op
from .engine import ProofCertificate, Status, _config, prove_preservation, rule_subject
from .errors import PreservationError
from .numeric import INT64, base_name, is_numeric
from .predicates import (
    Negative,
    NonNegative,
    NonPositive,
    NonZero,
    Positive,
    Predicate,
    Zero,
    predicate,
)

logger = logging.getLogger("refinery")

RuleKey = tuple[Predicate, Op, "Predicate | None"]


@dataclass(frozen=True)
class PreservationRule:
    """One entry: ``lhs op rhs`` always satisfies ``result``."""

    lhs: Predicate
    op: Op
    rhs: Predicate | None
    result: Predicate
    certificate: ProofCertificate | None = None

    @property
    def key(self) -> RuleKey:
        return (self.lhs, self.op, self.rhs)

    def __str__(self) -> str:
        if self.op.unary:
            return f"-{self.lhs!r} -> {self.result!r}"
        return f"{self.lhs!r} {self.op.symbol} {self.rhs!r} -> {self.result!r}"


class PreservationTable:
    """A mapping ``(lhs, op, rhs) -> result predicate``.

    Args:
        proof_base: Numeric base the rules are proved over (default ``INT64``).
    """

    def __init__(self, proof_base: Any = INT64) -> None:
        self.proof_base = proof_base
        self._rules: dict[RuleKey, PreservationRule] = {}

    def register(
        self,
        lhs: Any,
        op: Op,
        rhs: Any = None,
        result: Any = None,
        prove: bool | None = None,
    ) -> PreservationRule | None:
        """Add a rule.

        Args:
            lhs: Predicate of the left (or only) operand.
            op: The operator.
            rhs: Predicate of the right operand; defaults to *lhs*.
                Ignored for :attr:`Op.NEG`.
            result: Predicate the result satisfies; defaults to *lhs*.
            prove: Prove the rule with z3 first. Defaults to the configured
                ``prove_rules``.

        Returns:
            The registered rule, or ``None`` if it was disproved and
            ``raise_on_failure`` is off.

        Raises:
            PreservationError: If z3 finds a counterexample and
                ``raise_on_failure`` is on.
        """
        lhs = predicate(lhs)
        if op.unary:
            rhs = None
        else:
            rhs = lhs if rhs is None else predicate(rhs)
        result = lhs if result is None else predicate(result)
        if prove is None:
            prove = bool(_config["prove_rules"])

        cert: ProofCertificate | None = None
        if prove and is_numeric(self.proof_base):
            cert = prove_preservation(lhs, op, rhs, result, self.proof_base)
            if cert.status == Status.COUNTEREXAMPLE:
                if _config["raise_on_failure"]:
                    raise PreservationError(cert)
                logger.warning("rejected rule %s", cert)
                return None
            if not cert.verified:
                logger.info("rule accepted without proof: %s", cert)
        else:
            logger.info(
                "rule accepted without proof: %s",
                rule_subject(lhs, op, rhs, result, self.proof_base),
            )

        rule = PreservationRule(lhs, op, rhs, result, cert)
        self._rules[rule.key] = rule
        logger.debug("registered rule %s", rule)
        return rule

    def unregister(self, lhs: Any, op: Op, rhs: Any = None) -> None:
        """Remove a rule; a missing rule raises :class:`KeyError`."""
        del self._rules[self._key(lhs, op, rhs)]

    def _key(self, lhs: Any, op: Op, rhs: Any) -> RuleKey:
        lhs = predicate(lhs)
        if op.unary:
            return (lhs, op, None)
        return (lhs, op, lhs if rhs is None else predicate(rhs))

    def lookup(self, lhs: Any, op: Op, rhs: Any = None) -> Predicate | None:
        """Return the result predicate guaranteed by a rule, or ``None``."""
        rule = self._rules.get(self._key(lhs, op, rhs))
        return None if rule is None else rule.result

    def guarantee(self, lhs: Any, op: Op, rhs: Any, base: Any) -> Predicate | None:
        """Like :meth:`lookup`, but only for a rule that holds over *base*.

        A rule proved over :attr:`proof_base` is re-proved over any other
        base (certificates are cached per base). A refuted or unprovable
        rule gives ``None``. Rules accepted without proof at registration
        stay on the programmer's word everywhere.
        """
        rule = self._rules.get(self._key(lhs, op, rhs))
        if rule is None:
            return None
        cert = rule.certificate
        if cert is None or not cert.verified or base == self.proof_base:
            return rule.result
        if not is_numeric(base):
            return None
        if prove_preservation(rule.lhs, op, rule.rhs, rule.result, base).verified:
            return rule.result
        logger.debug("rule %s does not hold over %s", rule, base_name(base))
        return None

    def preserves(self, lhs: Any, op: Op, rhs: Any = None) -> bool:
        """``True`` iff a rule guarantees ``lhs op rhs`` stays within *lhs*."""
        return self.lookup(lhs, op, rhs) == predicate(lhs)

    def rules(self) -> list[PreservationRule]:
        return list(self._rules.values())

    def certificates(self) -> list[ProofCertificate]:
        return [r.certificate for r in self._rules.values() if r.certificate is not None]

    def copy(self) -> PreservationTable:
        clone = PreservationTable(self.proof_base)
        clone._rules = dict(self._rules)
        return clone

    def __contains__(self, key: object) -> bool:
        return key in self._rules

    def __iter__(self) -> Iterator[PreservationRule]:
        return iter(self.rules())

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"PreservationTable({len(self)} rules)"


# ---------------------------------------------------------------------------
# Default table
# ---------------------------------------------------------------------------

_DEFAULT_RULES: list[tuple[Predicate, Op, Predicate | None, Predicate | None]] = [
    (Positive, Op.ADD, None, None),
    (Positive, Op.MUL, None, None),
    (NonNegative, Op.ADD, None, None),
    (NonNegative, Op.MUL, None, None),
    (NonNegative, Op.ADD, Positive, Positive),
    (Positive, Op.ADD, NonNegative, Positive),
    (Negative, Op.ADD, None, None),
    (Negative, Op.MUL, Negative, Positive),
    (Positive, Op.NEG, None, Negative),
    (Negative, Op.NEG, None, Positive),
    (NonNegative, Op.NEG, None, NonPositive),
    (NonPositive, Op.NEG, None, NonNegative),
    (Zero, Op.NEG, None, Zero),
    (NonZero, Op.NEG, None, NonZero),
]

_default_table: PreservationTable | None = None


def build_default_table(prove: bool | None = None) -> PreservationTable:
    """Build a fresh table holding the built-in rules."""
    table = PreservationTable()
    for lhs, op, rhs, result in _DEFAULT_RULES:
        table.register(lhs, op, rhs, result, prove=prove)
    return table


def default_table() -> PreservationTable:
    """The process-wide table used by refined-value operators."""
    global _default_table
    if _default_table is None:
        _default_table = build_default_table()
    return _default_table


def reset_default_table() -> None:
    """Drop custom rules; the built-in table is rebuilt on next use."""
    global _default_table
    _default_table = None
