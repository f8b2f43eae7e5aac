"""Coverage adapters."""

from covgate.adapters.coverage.xccov import (
    ReportDecodeError,
    ReportReadError,
    XccovAdapter,
    parse_report,
    read_report_text,
    resolve_report_path,
)

__all__ = [
    "ReportDecodeError",
    "ReportReadError",
    "XccovAdapter",
    "parse_report",
    "read_report_text",
    "resolve_report_path",
]
