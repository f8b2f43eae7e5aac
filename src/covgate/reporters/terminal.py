"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from covgate.models.coverage import ChangedFile, ChangedFileCoverage, GateResult

COLOR_AUTO = "auto"
COLOR_ALWAYS = "always"
COLOR_NEVER = "never"
COLOR_MODES = (COLOR_AUTO, COLOR_ALWAYS, COLOR_NEVER)

_PASS_ICON = "✓"
_FAIL_ICON = "⨯"
_UNMATCHED_ICON = "?"

_HEADER = "Code Coverage Report"


def _console(**kwargs: Any) -> Console:
    """Return a stdout console that never wraps or restyles report lines."""
    return Console(soft_wrap=True, highlight=False, emoji=False, **kwargs)


class Colorizer(Protocol):
    """Wraps text in a named color for console output."""

    def colorize(self, text: str, color: str) -> str: ...


class RichColorizer:
    """Colorize text with Rich markup tags."""

    def colorize(self, text: str, color: str) -> str:
        return f"[{color}]{escape(text)}[/{color}]"


class PlainColorizer:
    """Leave text uncolored, for logs and non-terminal output."""

    def colorize(self, text: str, color: str) -> str:  # noqa: ARG002
        return escape(text)


class GateReporter:
    """Rich terminal output for coverage gate results."""

    def __init__(self, console: Console | None = None, colorizer: Colorizer | None = None) -> None:
        """Initialize the reporter.

        Args:
            console: Console to print to. Defaults to stdout without wrapping.
            colorizer: Color strategy. Defaults to Rich markup.
        """
        self.console = console or _console()
        self.colorizer = colorizer or RichColorizer()

    def _print(self, text: str = "") -> None:
        self.console.print(text)

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self._print(self.colorizer.colorize(message, "red"))

    def print_info(self, message: str) -> None:
        """Print a plain message."""
        self._print(escape(message))

    def print_usage(self, prog_name: str) -> None:
        """Print the argument error and usage lines."""
        self.print_info(
            'Incorrect parameters. Include JSON file generated by "xcrun xccov view '
            '--report --json <tests.xcresult> "'
        )
        self.print_info(f"Usage: {prog_name} file.json")

    def print_no_changes(self) -> None:
        """Print the message shown when no changed source files were found."""
        self._print(
            self.colorizer.colorize("Success. ", "green")
            + escape("No changes found. Check that new sources have been added to Git.")
        )

    def format_result(self, result: ChangedFileCoverage) -> str:
        """Return the markup line for one changed file."""
        icon = (
            self.colorizer.colorize(_PASS_ICON, "green")
            if result.passing
            else self.colorizer.colorize(_FAIL_ICON, "red")
        )
        target = self.colorizer.colorize(f"[{result.target}]", "cyan")
        return f"    {icon} {target} {escape(result.name)} ({result.coverage_percent:.2f}%)"

    def format_unmatched(self, changed_file: ChangedFile) -> str:
        """Return the markup line for a changed file missing from the report."""
        icon = self.colorizer.colorize(_UNMATCHED_ICON, "yellow")
        target = self.colorizer.colorize(f"[{changed_file.target}]", "cyan")
        return f"    {icon} {target} {escape(changed_file.name)} (no coverage data)"

    def print_results(self, gate: GateResult, *, show_unmatched: bool = True) -> None:
        """Print one line per changed file followed by the overall verdict."""
        self._print()
        self._print(self.colorizer.colorize(_HEADER, "cyan"))
        self._print("-" * len(_HEADER))

        for result in gate.results:
            self._print(self.format_result(result))

        if show_unmatched:
            for changed_file in gate.unmatched:
                self._print(self.format_unmatched(changed_file))

        if gate.passed:
            self._print(self.colorizer.colorize("Success", "green"))
        else:
            self._print(
                self.colorizer.colorize(
                    "Fail, please add code coverage in the files indicated above.", "red"
                )
            )


def make_reporter(color: str = COLOR_AUTO) -> GateReporter:
    """Build a reporter for a color mode (``auto``, ``always`` or ``never``).

    ``auto`` lets Rich strip styling when stdout is not a terminal.

    Raises:
        ValueError: If *color* is not a known mode.
    """
    if color == COLOR_AUTO:
        return GateReporter()
    if color == COLOR_ALWAYS:
        return GateReporter(_console(force_terminal=True))
    if color == COLOR_NEVER:
        return GateReporter(
            _console(no_color=True),
            PlainColorizer(),
        )
    raise ValueError(f"Unknown color mode: {color!r}")
