"""Reporters for coverage gate results."""

from covgate.reporters.json_reporter import JSONReporter
from covgate.reporters.terminal import (
    Colorizer,
    GateReporter,
    PlainColorizer,
    RichColorizer,
    make_reporter,
)

__all__ = [
    "Colorizer",
    "GateReporter",
    "JSONReporter",
    "PlainColorizer",
    "RichColorizer",
    "make_reporter",
]
