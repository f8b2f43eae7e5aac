"""covgate CLI: coverage quality gate for changed source files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler

from covgate import __version__
from covgate.adapters.coverage.xccov import (
    ReportDecodeError,
    ReportReadError,
    XccovAdapter,
    resolve_report_path,
)
from covgate.analyzers.gate import run_gate
from covgate.config import ConfigError, CovgateConfig, load_config, validate_config
from covgate.models.coverage import GateResult
from covgate.reporters.json_reporter import JSONReporter
from covgate.reporters.terminal import COLOR_AUTO, COLOR_NEVER, GateReporter, make_reporter
from covgate.utils.changes import (
    ChangedFileParseError,
    ChangesCommandError,
    parse_changed_files,
    run_changes_command,
)
from covgate.utils.git import GitOperationError, get_changed_paths

logger = logging.getLogger(__name__)

PROG_NAME = "covgate"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def _configure_logging(*, verbose: bool) -> None:
    """Send log records to stderr so they never mix with the report on stdout."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _fail(ctx: click.Context, reporter: GateReporter, message: str) -> NoReturn:
    reporter.print_error(message)
    ctx.exit(EXIT_FAILURE)


def _load_checked_config(ctx: click.Context, reporter: GateReporter, path: str) -> CovgateConfig:
    try:
        config = load_config(path)
    except ConfigError as e:
        _fail(ctx, reporter, str(e))

    errors = validate_config(config)
    if errors:
        reporter.print_error(f"Found {len(errors)} configuration error(s):")
        for error in errors:
            reporter.print_info(f"  - {error}")
        ctx.exit(EXIT_FAILURE)
    return config


def _list_changed_paths(
    config: CovgateConfig,
    project_root: Path,
    *,
    changes_command: str | None,
    base_ref: str | None,
) -> str:
    """Return the raw changed-path listing from git or the changes command."""
    if base_ref:
        return get_changed_paths(project_root, base_ref)
    return run_changes_command(
        changes_command or config.changes.command,
        cwd=project_root,
        timeout=config.changes.timeout,
    )


def _emit(
    gate: GateResult,
    reporter: GateReporter,
    config: CovgateConfig,
    *,
    as_json: bool,
) -> None:
    if as_json:
        click.echo(JSONReporter().generate_string(gate))
    else:
        reporter.print_results(gate, show_unmatched=config.report.warn_unmatched)


@click.command(name=PROG_NAME)
@click.argument("report", nargs=-1)
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root: where .covgate.yml is read and the changes command runs.",
)
@click.option(
    "--changes-command",
    default=None,
    help="Shell command printing changed paths (overrides changes.command).",
)
@click.option(
    "--base-ref",
    default=None,
    help="List changes with 'git diff BASE_REF...HEAD' instead of the changes command.",
)
@click.option("--no-color", is_flag=True, help="Disable colored output.")
@click.option("--json-output", "as_json", is_flag=True, help="Output results as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stderr.")
@click.version_option(version=__version__, prog_name=PROG_NAME)
@click.pass_context
def cli(
    ctx: click.Context,
    report: tuple[str, ...],
    path: str,
    changes_command: str | None,
    base_ref: str | None,
    *,
    no_color: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """Fail when a changed source file's coverage is 80% or lower.

    REPORT is the JSON file generated by
    "xcrun xccov view --report --json <tests.xcresult>", relative to the
    current directory.

    \b
    Example:
      covgate coverage.json
      covgate --base-ref origin/main coverage.json
    """
    _configure_logging(verbose=verbose)

    reporter = make_reporter(COLOR_NEVER if no_color or as_json else COLOR_AUTO)
    config = _load_checked_config(ctx, reporter, path)
    if not (no_color or as_json):
        reporter = make_reporter(config.report.color)

    project_root = Path(path)
    try:
        raw_changes = _list_changed_paths(
            config, project_root, changes_command=changes_command, base_ref=base_ref
        )
        changed_files = parse_changed_files(
            raw_changes,
            target_suffix=config.changes.target_suffix,
            source_token=config.changes.source_token,
            on_short_path=config.changes.on_short_path,
        )
    except (ChangesCommandError, GitOperationError, ChangedFileParseError) as e:
        _fail(ctx, reporter, str(e))

    if not changed_files:
        if as_json:
            click.echo(JSONReporter().generate_string(GateResult()))
        else:
            reporter.print_no_changes()
        ctx.exit(EXIT_SUCCESS)

    if len(report) != 1:
        reporter.print_usage(PROG_NAME)
        ctx.exit(EXIT_FAILURE)

    report_path = resolve_report_path(report[0])
    adapter = XccovAdapter()
    try:
        coverage_report = adapter.parse_coverage_file(report_path)
    except ReportReadError as e:
        _fail(ctx, reporter, str(e))
    except ReportDecodeError as e:
        logger.error("Report %s rejected: %s", report_path, e.detail)
        _fail(ctx, reporter, str(e))

    gate = run_gate(coverage_report, changed_files)
    _emit(gate, reporter, config, as_json=as_json)
    ctx.exit(EXIT_SUCCESS if gate.passed else EXIT_FAILURE)
