"""Coverage gate: judges changed files against the coverage threshold.

Joins the changed files of a revision with a decoded coverage report and
classifies every match as passing or failing. All functions here are pure:
the same inputs always give the same results.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_EVEN, Decimal
from typing import TYPE_CHECKING

from covgate.models.coverage import ChangedFileCoverage, GateResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from covgate.models.coverage import ChangedFile, CoverageReport

logger = logging.getLogger(__name__)

COVERAGE_THRESHOLD = 80.0
"""A changed file passes only with coverage strictly above this percentage."""

_TWO_PLACES = Decimal("0.01")


def round_to_two_decimals(value: float) -> float:
    """Round *value* half-to-even at two decimal places.

    Works on the shortest decimal representation of the float, so
    ``56.99999999999999`` (from ``0.57 * 100``) rounds to ``57.0``.
    """
    return float(Decimal(repr(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_EVEN))


def coverage_percentage(ratio: float) -> float:
    """Convert a 0.0-1.0 coverage ratio to a rounded percentage."""
    return round_to_two_decimals(ratio * 100.0)


def is_passing(percent: float) -> bool:
    """Return True if *percent* is strictly above the threshold."""
    return percent > COVERAGE_THRESHOLD


def evaluate(
    report: CoverageReport,
    changed_files: Sequence[ChangedFile],
) -> list[ChangedFileCoverage]:
    """Return coverage for every changed file present in *report*.

    Results follow report target order, then changed-file order, then report
    file order. Changed files missing from the report produce no result.
    """
    results: list[ChangedFileCoverage] = []

    for target in report.targets:
        for changed_file in changed_files:
            if target.name != changed_file.target:
                continue
            for file in target.files:
                if file.name != changed_file.name:
                    continue
                percent = coverage_percentage(file.line_coverage)
                results.append(
                    ChangedFileCoverage(
                        target=changed_file.target,
                        name=file.name,
                        coverage_percent=percent,
                        passing=is_passing(percent),
                    )
                )

    return results


def find_unmatched(
    report: CoverageReport,
    changed_files: Sequence[ChangedFile],
) -> list[ChangedFile]:
    """Return the changed files that have no entry in *report*."""
    known = {(target.name, file.name) for target in report.targets for file in target.files}
    return [
        changed_file
        for changed_file in changed_files
        if (changed_file.target, changed_file.name) not in known
    ]


def run_gate(report: CoverageReport, changed_files: Sequence[ChangedFile]) -> GateResult:
    """Evaluate *changed_files* against *report* and collect unmatched files."""
    results = evaluate(report, changed_files)
    unmatched = find_unmatched(report, changed_files)

    for changed_file in unmatched:
        logger.info("No coverage data for %s in %s", changed_file.name, changed_file.target)

    gate = GateResult(results=tuple(results), unmatched=tuple(unmatched))
    logger.debug(
        "Gate evaluated %d file(s): %d failing, %d unmatched",
        len(gate.results),
        len(gate.failing),
        len(gate.unmatched),
    )
    return gate
