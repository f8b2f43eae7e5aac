"""Data models for covgate."""

from covgate.models.coverage import (
    ChangedFile,
    ChangedFileCoverage,
    CoverageReport,
    FileCoverage,
    FunctionCoverage,
    GateResult,
    TargetCoverage,
)

__all__ = [
    "ChangedFile",
    "ChangedFileCoverage",
    "CoverageReport",
    "FileCoverage",
    "FunctionCoverage",
    "GateResult",
    "TargetCoverage",
]
