"""JSON reporter for machine-readable coverage gate results.

Used by ``covgate --json-output`` so CI steps can consume the verdict
without scraping terminal output.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from covgate.analyzers.gate import COVERAGE_THRESHOLD

if TYPE_CHECKING:
    from covgate.models.coverage import GateResult


class JSONReporter:
    """Serialize a GateResult into a JSON document."""

    def generate_string(self, gate: GateResult) -> str:
        """Return the JSON report as a string."""
        return json.dumps(_build_report(gate), indent=2, ensure_ascii=False)


def _build_report(gate: GateResult) -> dict[str, Any]:
    """Build the JSON report structure."""
    return {
        "passed": gate.passed,
        "threshold": COVERAGE_THRESHOLD,
        "files": [
            {
                "target": result.target,
                "name": result.name,
                "coverage_percent": result.coverage_percent,
                "passing": result.passing,
            }
            for result in gate.results
        ],
        "unmatched": [
            {"target": changed_file.target, "name": changed_file.name}
            for changed_file in gate.unmatched
        ],
    }
