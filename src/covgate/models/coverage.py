"""Coverage report models.

The report shapes mirror the JSON emitted by
``xcrun xccov view --report --json <tests.xcresult>``: a report holds
targets, targets hold files, files hold functions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FunctionCoverage:
    """Coverage metrics for a single function."""

    name: str
    """Function signature as reported by xccov."""

    line_number: int
    """Line the function starts on."""

    execution_count: int
    """Number of times the function was entered."""

    covered_lines: int
    """Executable lines hit at least once."""

    executable_lines: int
    """Total executable lines."""

    line_coverage: float
    """Line coverage ratio (0.0 to 1.0)."""


@dataclass(frozen=True)
class FileCoverage:
    """Coverage metrics for a single source file within a target."""

    name: str
    """Bare filename (e.g. ``Foo.swift``)."""

    path: str
    """Full path to the source file."""

    covered_lines: int
    """Executable lines hit at least once."""

    executable_lines: int
    """Total executable lines."""

    line_coverage: float
    """Line coverage ratio (0.0 to 1.0) as recorded in the report."""

    functions: tuple[FunctionCoverage, ...] = ()
    """Per-function coverage, in report order."""


@dataclass(frozen=True)
class TargetCoverage:
    """Coverage metrics for a build product (framework, app, extension)."""

    name: str
    """Target name as it appears in the report (e.g. ``Home.framework``)."""

    build_product_path: str
    """Path to the built product."""

    covered_lines: int
    """Executable lines hit at least once."""

    executable_lines: int
    """Total executable lines."""

    line_coverage: float
    """Line coverage ratio (0.0 to 1.0)."""

    files: tuple[FileCoverage, ...] = ()
    """Source files belonging to the target, in report order."""


@dataclass(frozen=True)
class CoverageReport:
    """Complete decoded coverage report."""

    covered_lines: int
    """Executable lines hit at least once across all targets."""

    executable_lines: int
    """Total executable lines across all targets."""

    line_coverage: float
    """Overall line coverage ratio (0.0 to 1.0)."""

    targets: tuple[TargetCoverage, ...] = ()
    """Targets in report order."""


@dataclass(frozen=True)
class ChangedFile:
    """A source file touched by the revision under test."""

    target: str
    """Target the file belongs to, suffixed to match report naming."""

    name: str
    """Bare filename."""


@dataclass(frozen=True)
class ChangedFileCoverage:
    """Coverage of one changed file, as judged by the gate."""

    target: str
    name: str
    coverage_percent: float
    """Coverage percentage (0.0 to 100.0), rounded to two decimals."""

    passing: bool


@dataclass(frozen=True)
class GateResult:
    """Outcome of evaluating a set of changed files against a report."""

    results: tuple[ChangedFileCoverage, ...] = ()
    """One entry per changed file found in the report, in join order."""

    unmatched: tuple[ChangedFile, ...] = ()
    """Changed files with no coverage data in the report."""

    @property
    def passed(self) -> bool:
        """Return True if every matched file meets the threshold."""
        return all(result.passing for result in self.results)

    @property
    def failing(self) -> list[ChangedFileCoverage]:
        """Return the matched files below the threshold."""
        return [result for result in self.results if not result.passing]
