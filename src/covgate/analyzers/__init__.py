"""Analyzers that turn coverage data into gate decisions."""

from covgate.analyzers.gate import (
    COVERAGE_THRESHOLD,
    coverage_percentage,
    evaluate,
    find_unmatched,
    is_passing,
    round_to_two_decimals,
    run_gate,
)

__all__ = [
    "COVERAGE_THRESHOLD",
    "coverage_percentage",
    "evaluate",
    "find_unmatched",
    "is_passing",
    "round_to_two_decimals",
    "run_gate",
]
