"""Tests for refinery.preservation — the rule table."""

from __future__ import annotations

import logging

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from refinery import preservation
from refinery.arithmetic import Op
from refinery.engine import Status, configure
from refinery.errors import ArithmeticOverflowError, PreservationError
from refinery.hypothesis import strategy_for
from refinery.numeric import FLOAT32, FLOAT64, INT8, INT64
from refinery.preservation import (
    PreservationRule,
    PreservationTable,
    build_default_table,
    default_table,
    reset_default_table,
)
from refinery.predicates import (
    Even,
    GreaterOrEqual,
    GreaterThan,
    Negative,
    NonNegative,
    NonPositive,
    NonZero,
    Odd,
    Positive,
    PowerOfTwo,
    Zero,
    holds,
)
from refinery.refined import Refined, refined_binop, refined_neg

# ---------------------------------------------------------------------------
# Default rules
# ---------------------------------------------------------------------------


class TestDefaultTable:
    def test_every_default_rule_is_proved(self) -> None:
        table = build_default_table()
        assert len(table) == 14
        assert all(c.verified for c in table.certificates())
        assert len(table.certificates()) == 14

    @pytest.mark.parametrize(
        "lhs,op,rhs,result",
        [
            (Positive, Op.ADD, Positive, Positive),
            (Positive, Op.MUL, Positive, Positive),
            (NonNegative, Op.ADD, NonNegative, NonNegative),
            (NonNegative, Op.ADD, Positive, Positive),
            (Positive, Op.ADD, NonNegative, Positive),
            (Negative, Op.MUL, Negative, Positive),
            (Positive, Op.NEG, None, Negative),
            (NonNegative, Op.NEG, None, NonPositive),
            (Zero, Op.NEG, None, Zero),
            (NonZero, Op.NEG, None, NonZero),
        ],
    )
    def test_lookup(self, lhs: object, op: Op, rhs: object, result: object) -> None:
        assert default_table().lookup(lhs, op, rhs) == result

    def test_missing_rules(self) -> None:
        table = default_table()
        assert table.lookup(Positive, Op.SUB, Positive) is None
        assert table.lookup(Positive, Op.ADD, Negative) is None
        assert table.lookup(NonZero, Op.ADD, NonZero) is None

    def test_preserves(self) -> None:
        table = default_table()
        assert table.preserves(Positive, Op.ADD)
        assert not table.preserves(Negative, Op.MUL)
        assert not table.preserves(Positive, Op.SUB)

    def test_default_table_is_shared(self) -> None:
        assert default_table() is default_table()

    def test_reset(self) -> None:
        first = default_table()
        first.register(Even, Op.ADD)
        reset_default_table()
        second = default_table()
        assert second is not first
        assert second.lookup(Even, Op.ADD) is None
        assert preservation._default_table is second


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_defaults_rhs_and_result_to_lhs(self) -> None:
        table = PreservationTable()
        rule = table.register(Even, Op.ADD)
        assert rule is not None
        assert rule.rhs == Even
        assert rule.result == Even
        assert rule.certificate is not None and rule.certificate.verified
        assert (Even, Op.ADD, Even) in table

    def test_cross_predicate_rule(self) -> None:
        table = PreservationTable()
        table.register(Odd, Op.ADD, Odd, Even)
        assert table.lookup(Odd, Op.ADD, Odd) == Even
        assert not table.preserves(Odd, Op.ADD)

    def test_disproved_rule_raises(self) -> None:
        table = PreservationTable()
        with pytest.raises(PreservationError) as exc_info:
            table.register(Positive, Op.SUB)
        assert exc_info.value.certificate.refuted
        assert "DISPROVED" in str(exc_info.value)
        assert len(table) == 0

    def test_disproved_rule_dropped_when_not_raising(self, caplog: pytest.LogCaptureFixture) -> None:
        configure(raise_on_failure=False)
        table = PreservationTable()
        with caplog.at_level(logging.WARNING, logger="refinery"):
            assert table.register(Positive, Op.SUB) is None
        assert "rejected rule" in caplog.text
        assert table.lookup(Positive, Op.SUB) is None

    def test_unproved_rule_is_accepted(self) -> None:
        table = PreservationTable()
        rule = table.register(Positive, Op.SUB, prove=False)
        assert rule is not None
        assert rule.certificate is None
        assert table.lookup(Positive, Op.SUB) == Positive

    def test_prove_rules_config(self) -> None:
        configure(prove_rules=False)
        rule = PreservationTable().register(Even, Op.MUL)
        assert rule is not None and rule.certificate is None

    def test_unencodable_rule_is_accepted_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        table = PreservationTable()
        with caplog.at_level(logging.INFO, logger="refinery"):
            rule = table.register(PowerOfTwo, Op.MUL)
        assert rule is not None
        assert rule.certificate is not None
        assert rule.certificate.status == Status.SKIPPED
        assert "without proof" in caplog.text

    def test_non_numeric_proof_base(self) -> None:
        table = PreservationTable(proof_base=str)
        rule = table.register(Positive, Op.SUB)
        assert rule is not None and rule.certificate is None

    def test_unary_ignores_rhs(self) -> None:
        table = PreservationTable()
        rule = table.register(Positive, Op.NEG, Positive, Negative)
        assert rule is not None
        assert rule.rhs is None
        assert table.lookup(Positive, Op.NEG, Even) == Negative

    def test_plain_callable_operand(self) -> None:
        def small(v: int) -> bool:
            return abs(v) < 10

        table = PreservationTable()
        table.register(small, Op.NEG)
        assert table.lookup(small, Op.NEG) is not None


# ---------------------------------------------------------------------------
# Table container behavior
# ---------------------------------------------------------------------------


class TestTable:
    def test_unregister(self) -> None:
        table = PreservationTable()
        table.register(Even, Op.ADD)
        table.unregister(Even, Op.ADD)
        assert len(table) == 0
        with pytest.raises(KeyError):
            table.unregister(Even, Op.ADD)

    def test_copy_is_independent(self) -> None:
        table = PreservationTable()
        table.register(Even, Op.ADD)
        clone = table.copy()
        clone.register(Even, Op.MUL)
        assert len(table) == 1
        assert len(clone) == 2

    def test_iteration(self) -> None:
        table = PreservationTable()
        table.register(Even, Op.ADD)
        table.register(Positive, Op.NEG, result=Negative)
        rules = list(table)
        assert all(isinstance(r, PreservationRule) for r in rules)
        assert [str(r) for r in rules] == ["Even + Even -> Even", "-Positive -> Negative"]
        assert repr(table) == "PreservationTable(2 rules)"


# ---------------------------------------------------------------------------
# Rules per base
# ---------------------------------------------------------------------------


class TestGuarantee:
    def test_proof_base_uses_the_registered_rule(self) -> None:
        table = PreservationTable()
        table.register(Odd, Op.ADD, Odd, Even)
        assert table.guarantee(Odd, Op.ADD, Odd, INT64) == Even

    def test_other_int_base_is_proved_again(self) -> None:
        table = PreservationTable()
        table.register(Odd, Op.ADD, Odd, Even)
        assert table.guarantee(Odd, Op.ADD, Odd, INT8) == Even

    def test_int_only_rule_does_not_hold_on_floats(self) -> None:
        table = PreservationTable()
        table.register(Odd, Op.ADD, Odd, Even)
        assert table.lookup(Odd, Op.ADD, Odd) == Even
        assert table.guarantee(Odd, Op.ADD, Odd, FLOAT64) is None

    def test_rule_refuted_over_reals(self) -> None:
        table = PreservationTable()
        rule = table.register(GreaterThan(0), Op.ADD, GreaterThan(0), GreaterOrEqual(2))
        assert rule is not None and rule.certificate is not None and rule.certificate.verified
        assert table.guarantee(GreaterThan(0), Op.ADD, GreaterThan(0), FLOAT64) is None

    def test_sign_rules_hold_on_floats(self) -> None:
        table = default_table()
        assert table.guarantee(Positive, Op.ADD, Positive, FLOAT64) == Positive
        assert table.guarantee(Negative, Op.MUL, Negative, FLOAT32) == Positive
        assert table.guarantee(Positive, Op.NEG, None, FLOAT64) == Negative

    def test_unproved_rule_stays_trusted(self) -> None:
        table = PreservationTable()
        table.register(Odd, Op.MUL, prove=False)
        assert table.guarantee(Odd, Op.MUL, Odd, FLOAT64) == Odd

    def test_missing_rule_and_non_numeric_base(self) -> None:
        table = default_table()
        assert table.guarantee(Positive, Op.SUB, Positive, FLOAT64) is None
        assert table.guarantee(Positive, Op.ADD, Positive, str) is None


class TestDefaultRulesSampled:
    @pytest.mark.parametrize("base", [FLOAT64, FLOAT32, INT8])
    @pytest.mark.parametrize("lhs,op,rhs,result", preservation._DEFAULT_RULES)
    @settings(max_examples=50, deadline=None, suppress_health_check=list(HealthCheck))
    @given(data=st.data())
    def test_result_satisfies_rule(
        self, lhs: object, op: Op, rhs: object, result: object, base: object, data: st.DataObject
    ) -> None:
        rhs = lhs if rhs is None else rhs
        result = lhs if result is None else result
        a = Refined.of(lhs, base)(data.draw(strategy_for(lhs, base), label="a"))
        try:
            if op.unary:
                out = refined_neg(a)
            else:
                b = Refined.of(rhs, base)(data.draw(strategy_for(rhs, base), label="b"))
                out = refined_binop(a, b, op)
        except ArithmeticOverflowError:
            assume(False)
            return
        assert out is not None
        assert out.predicate == result
        assert holds(out.predicate, out.value)
