"""pytest plugin for refinery — preservation-rule report in CI.

Registered automatically as ``refinery`` when the package is installed.

Provides:
- ``--refinery-report`` CLI flag: print the preservation table with the
  proof status of every rule in the terminal summary.
- ``--refinery`` CLI flag: restrict collection to tests marked with
  ``@pytest.mark.proven``.
- ``proven`` marker: tag tests that exercise proved preservation rules.

Usage::

    pytest --refinery-report        # run all tests + print rule table
    pytest --refinery               # run only @pytest.mark.proven tests
"""

from __future__ import annotations

from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Plugin registration hooks
# ---------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register refinery CLI options."""
    group = parser.getgroup("refinery", "Refinery refined values")
    group.addoption(
        "--refinery-report",
        action="store_true",
        default=False,
        help="Print the preservation table with proof status in the terminal summary.",
    )
    group.addoption(
        "--refinery",
        action="store_true",
        default=False,
        help="Run only tests marked with @pytest.mark.proven.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the 'proven' marker so it doesn't produce an unknown-mark warning."""
    config.addinivalue_line(
        "markers",
        "proven: mark a test as exercising a proved preservation rule.",
    )


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """If --refinery is set, keep only tests marked with 'proven'."""
    if not config.getoption("--refinery", default=False):
        return

    selected: list[pytest.Item] = []
    deselected: list[pytest.Item] = []

    for item in items:
        if item.get_closest_marker("proven") is not None:
            selected.append(item)
        else:
            deselected.append(item)

    if deselected:
        config.hook.pytest_deselected(items=deselected)
    items[:] = selected


# ---------------------------------------------------------------------------
# Terminal summary
# ---------------------------------------------------------------------------


def pytest_terminal_summary(
    terminalreporter: Any,
    exitstatus: int,
    config: pytest.Config,
) -> None:
    """Print the preservation table when --refinery-report is active."""
    if not config.getoption("--refinery-report", default=False):
        return

    from refinery.preservation import default_table

    rules = default_table().rules()
    if not rules:
        terminalreporter.write_sep("-", "refinery: preservation table is empty")
        return

    terminalreporter.write_sep("=", "refinery preservation table")

    names = [str(r) for r in rules]
    col_rule = max(len("Rule"), max(len(n) for n in names))
    header = f"{'Rule':<{col_rule}}  {'Status':<14}  {'ms':>6}"
    terminalreporter.write_line(header)
    terminalreporter.write_line("-" * (len(header) + 10))

    proved = 0
    for name, rule in sorted(zip(names, rules), key=lambda pair: pair[0]):
        cert = rule.certificate
        if cert is None:
            status, ms = "ASSUMED", 0.0
        else:
            status = "Q.E.D." if cert.verified else cert.status.value.upper()
            ms = cert.solver_time_ms
            proved += cert.verified
        terminalreporter.write_line(f"{name:<{col_rule}}  {status:<14}  {ms:>6.1f}")

    terminalreporter.write_sep("-", f"refinery: {proved}/{len(rules)} rules proved")
