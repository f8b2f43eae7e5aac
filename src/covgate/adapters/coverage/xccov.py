"""xccov coverage adapter for Xcode projects.

Parses the JSON produced by ``xcrun xccov view --report --json`` into the
report models. Decoding is strict: a missing field or a value of the wrong
type rejects the whole report rather than producing a partial one.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from covgate.models.coverage import (
    CoverageReport,
    FileCoverage,
    FunctionCoverage,
    TargetCoverage,
)

logger = logging.getLogger(__name__)


class ReportReadError(Exception):
    """Raised when the report file cannot be read as UTF-8 text."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Error: Invalid JSON at path: {path}")
        self.path = path


class ReportDecodeError(Exception):
    """Raised when the report does not match the xccov schema."""

    def __init__(self, detail: str) -> None:
        super().__init__("Error: Could not decode the report.")
        self.detail = detail


# ── Field readers ────────────────────────────────────────────────


def _field(data: dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise ReportDecodeError(f"{where}: missing required field '{key}'")
    return data[key]


def _int(data: dict[str, Any], key: str, where: str) -> int:
    value = _field(data, key, where)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    # bool is an int subclass; JSON true/false is not a line count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ReportDecodeError(f"{where}.{key}: expected integer, got {type(value).__name__}")
    return value


def _float(data: dict[str, Any], key: str, where: str) -> float:
    value = _field(data, key, where)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ReportDecodeError(f"{where}.{key}: expected number, got {type(value).__name__}")
    return float(value)


def _str(data: dict[str, Any], key: str, where: str) -> str:
    value = _field(data, key, where)
    if not isinstance(value, str):
        raise ReportDecodeError(f"{where}.{key}: expected string, got {type(value).__name__}")
    return value


def _objects(data: dict[str, Any], key: str, where: str) -> list[dict[str, Any]]:
    value = _field(data, key, where)
    if not isinstance(value, list):
        raise ReportDecodeError(f"{where}.{key}: expected array, got {type(value).__name__}")
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise ReportDecodeError(f"{where}.{key}[{index}]: expected object")
    return value


# ── Decoding ─────────────────────────────────────────────────────


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def _parse_function(data: dict[str, Any], where: str) -> FunctionCoverage:
    return FunctionCoverage(
        name=_str(data, "name", where),
        line_number=_int(data, "lineNumber", where),
        execution_count=_int(data, "executionCount", where),
        covered_lines=_int(data, "coveredLines", where),
        executable_lines=_int(data, "executableLines", where),
        line_coverage=_float(data, "lineCoverage", where),
    )


def _parse_file(data: dict[str, Any], where: str) -> FileCoverage:
    functions = tuple(
        _parse_function(item, f"{where}.functions[{index}]")
        for index, item in enumerate(_objects(data, "functions", where))
    )
    return FileCoverage(
        name=_str(data, "name", where),
        path=_str(data, "path", where),
        covered_lines=_int(data, "coveredLines", where),
        executable_lines=_int(data, "executableLines", where),
        line_coverage=_float(data, "lineCoverage", where),
        functions=functions,
    )


def _parse_target(data: dict[str, Any], where: str) -> TargetCoverage:
    files = tuple(
        _parse_file(item, f"{where}.files[{index}]")
        for index, item in enumerate(_objects(data, "files", where))
    )
    return TargetCoverage(
        name=_str(data, "name", where),
        build_product_path=_str(data, "buildProductPath", where),
        covered_lines=_int(data, "coveredLines", where),
        executable_lines=_int(data, "executableLines", where),
        line_coverage=_float(data, "lineCoverage", where),
        files=files,
    )


def parse_report(text: str) -> CoverageReport:
    """Decode xccov JSON text into a CoverageReport.

    xccov format:
    {
      "coveredLines": 120, "executableLines": 150, "lineCoverage": 0.8,
      "targets": [
        {
          "name": "Home.framework", "buildProductPath": "...",
          "coveredLines": ..., "executableLines": ..., "lineCoverage": ...,
          "files": [
            {
              "name": "Foo.swift", "path": "/.../Foo.swift",
              "coveredLines": ..., "executableLines": ..., "lineCoverage": ...,
              "functions": [
                {"name": "...", "lineNumber": 12, "executionCount": 3,
                 "coveredLines": ..., "executableLines": ..., "lineCoverage": ...}
              ]
            }
          ]
        }
      ]
    }

    Raises:
        ReportDecodeError: If the text is not JSON or does not match the schema.
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ReportDecodeError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ReportDecodeError(f"report: expected object, got {type(data).__name__}")

    targets = tuple(
        _parse_target(item, f"targets[{index}]")
        for index, item in enumerate(_objects(data, "targets", "report"))
    )
    report = CoverageReport(
        covered_lines=_int(data, "coveredLines", "report"),
        executable_lines=_int(data, "executableLines", "report"),
        line_coverage=_float(data, "lineCoverage", "report"),
        targets=targets,
    )
    logger.debug(
        "Decoded coverage report: %d targets, %d files",
        len(report.targets),
        sum(len(target.files) for target in report.targets),
    )
    return report


def read_report_text(path: Path) -> str:
    """Read the report file as UTF-8 text.

    Raises:
        ReportReadError: If the file is missing, unreadable, or not UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Failed to read coverage report %s: %s", path, exc)
        raise ReportReadError(path) from exc


def resolve_report_path(argument: str, cwd: Path | None = None) -> Path:
    """Return the report path for a command-line argument, relative to *cwd*.

    An absolute *argument* is returned as given.
    """
    return (cwd or Path.cwd()) / argument


class XccovAdapter:
    """Coverage adapter for Xcode's ``xccov`` JSON reports."""

    @property
    def name(self) -> str:
        return "xccov"

    def parse_coverage_file(self, coverage_file: Path) -> CoverageReport:
        """Read and decode an xccov JSON report file.

        Raises:
            ReportReadError: If the file cannot be read as UTF-8 text.
            ReportDecodeError: If the content does not match the schema.
        """
        logger.debug("Parsing %s report %s", self.name, coverage_file)
        return parse_report(read_report_text(coverage_file))
