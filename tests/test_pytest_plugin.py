"""Tests for refinery.pytest_plugin using pytester."""

from __future__ import annotations

import pytest

# Enable the pytester built-in plugin (required to use the pytester fixture)
pytest_plugins = ["pytester"]


# ---------------------------------------------------------------------------
# --refinery-report flag
# ---------------------------------------------------------------------------


class TestRefineryReportFlag:
    def test_report_flag(self, pytester: pytest.Pytester) -> None:
        """--refinery-report prints the preservation table in terminal output."""
        pytester.makepyfile(
            """
            from refinery import PositiveInt

            def test_add():
                assert PositiveInt(2) + PositiveInt(3) == 5
            """
        )
        result = pytester.runpytest("--refinery-report", "-v")
        result.assert_outcomes(passed=1)
        result.stdout.fnmatch_lines(["*refinery preservation table*"])
        result.stdout.fnmatch_lines(["*Positive + Positive -> Positive*Q.E.D.*"])
        result.stdout.fnmatch_lines(["*refinery: 14/14 rules proved*"])

    def test_no_report_without_flag(self, pytester: pytest.Pytester) -> None:
        """Without --refinery-report, no table is printed."""
        pytester.makepyfile(
            """
            def test_plain():
                assert 1 + 1 == 2
            """
        )
        result = pytester.runpytest("-v")
        result.assert_outcomes(passed=1)
        assert "refinery preservation table" not in result.stdout.str()

    def test_unproved_rule_is_reported_as_assumed(self, pytester: pytest.Pytester) -> None:
        pytester.makepyfile(
            """
            from refinery import Op, default_table
            from refinery.predicates import Odd

            def test_register():
                default_table().register(Odd, Op.MUL, prove=False)
            """
        )
        result = pytester.runpytest("--refinery-report")
        result.assert_outcomes(passed=1)
        result.stdout.fnmatch_lines(["*Odd * Odd -> Odd*ASSUMED*"])
        result.stdout.fnmatch_lines(["*refinery: 14/15 rules proved*"])

    def test_empty_table(self, pytester: pytest.Pytester) -> None:
        pytester.makeconftest(
            """
            from refinery import preservation

            preservation._default_table = preservation.PreservationTable()
            """
        )
        pytester.makepyfile(
            """
            def test_plain():
                assert True
            """
        )
        result = pytester.runpytest("--refinery-report")
        result.assert_outcomes(passed=1)
        result.stdout.fnmatch_lines(["*refinery: preservation table is empty*"])


# ---------------------------------------------------------------------------
# proven marker
# ---------------------------------------------------------------------------


class TestProvenMarker:
    def test_proven_marker(self, pytester: pytest.Pytester) -> None:
        """@pytest.mark.proven test is collected and runs normally."""
        pytester.makepyfile(
            """
            import pytest
            from refinery import Op, default_table
            from refinery.predicates import Positive

            @pytest.mark.proven
            def test_positive_add_is_proved():
                assert default_table().preserves(Positive, Op.ADD)

            def test_ordinary():
                assert 2 + 2 == 4
            """
        )
        result = pytester.runpytest("-v")
        result.assert_outcomes(passed=2)
        result.stdout.fnmatch_lines(["*test_positive_add_is_proved*PASSED*"])

    def test_refinery_flag_filters_to_proven(self, pytester: pytest.Pytester) -> None:
        """--refinery runs only proven-marked tests."""
        pytester.makepyfile(
            """
            import pytest

            @pytest.mark.proven
            def test_proven_one():
                assert True

            def test_not_proven():
                assert True
            """
        )
        result = pytester.runpytest("--refinery", "-v")
        result.assert_outcomes(passed=1)
        result.stdout.fnmatch_lines(["*test_proven_one*PASSED*"])
        assert "test_not_proven" not in result.stdout.str()

    def test_proven_marker_no_warning(self, pytester: pytest.Pytester) -> None:
        """Using @pytest.mark.proven does not produce an unknown-mark warning."""
        pytester.makepyfile(
            """
            import pytest

            @pytest.mark.proven
            def test_clean():
                assert True
            """
        )
        result = pytester.runpytest("-v", "-W", "error::pytest.PytestUnknownMarkWarning")
        result.assert_outcomes(passed=1)
