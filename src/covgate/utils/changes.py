"""Changed-file discovery for the coverage gate.

Runs the project's diff-listing command and turns its raw output into
``ChangedFile`` records. Paths are expected to look like
``<Target>/Sources/<Group>/<File>.swift``: the first segment names the
target and the last segment names the file.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from covgate.models.coverage import ChangedFile

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

DEFAULT_CHANGES_COMMAND = "bash ./scripts/filterSourceChanges.sh"
DEFAULT_TARGET_SUFFIX = ".framework"
DEFAULT_SOURCE_TOKEN = "swift"

# Minimum "/"-separated segments in a changed path (target/.../file)
MIN_PATH_SEGMENTS = 4

ON_SHORT_PATH_STOP = "stop"
ON_SHORT_PATH_SKIP = "skip"
SHORT_PATH_POLICIES = (ON_SHORT_PATH_STOP, ON_SHORT_PATH_SKIP)


class ChangedFileParseError(Exception):
    """Raised when a changed path cannot be turned into a ChangedFile."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Changed file parsing error: {path} is not a valid {reason}")
        self.path = path


class ChangesCommandError(Exception):
    """Raised when the diff-listing command cannot be run."""


def run_changes_command(
    command: str,
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> str:
    """Run the diff-listing command through the shell and return its output.

    Stdout and stderr are merged, as a terminal would show them. A non-zero
    exit status is logged but not treated as an error: whatever the command
    printed is still parsed.

    Raises:
        ChangesCommandError: If the command cannot be started or times out.
    """
    work_dir = cwd or Path.cwd()
    logger.debug("Running changes command: %s (cwd=%s)", command, work_dir)

    try:
        result = subprocess.run(  # noqa: S602
            command,
            shell=True,
            cwd=work_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ChangesCommandError(
            f"Changes command timed out after {timeout} seconds: {command}"
        ) from exc
    except OSError as exc:
        raise ChangesCommandError(f"Failed to run changes command {command!r}: {exc}") from exc

    if result.returncode != 0:
        logger.warning("Changes command exited with status %d: %s", result.returncode, command)

    return result.stdout.decode("utf-8", errors="replace")


def _split_paths(raw: str) -> list[str]:
    """Split raw command output into unique paths, keeping first-seen order."""
    return list(dict.fromkeys(raw.split()))


def parse_changed_file(
    path: str,
    *,
    target_suffix: str = DEFAULT_TARGET_SUFFIX,
    source_token: str = DEFAULT_SOURCE_TOKEN,
) -> ChangedFile:
    """Parse a single changed path into a ChangedFile.

    Raises:
        ChangedFileParseError: If the path has no target or file segment, or
            the file is not a recognised source file.
    """
    segments = path.split("/")
    target = segments[0]
    name = segments[-1]

    if not target or not name:
        raise ChangedFileParseError(path, "file")

    if source_token not in name:
        label = source_token.capitalize()
        raise ChangedFileParseError(path, f"{label} source file")

    return ChangedFile(target=target + target_suffix, name=name)


def parse_changed_files(
    raw: str,
    *,
    target_suffix: str = DEFAULT_TARGET_SUFFIX,
    source_token: str = DEFAULT_SOURCE_TOKEN,
    on_short_path: str = ON_SHORT_PATH_STOP,
) -> list[ChangedFile]:
    """Parse raw diff output into ChangedFile records.

    A path with fewer than ``MIN_PATH_SEGMENTS`` segments ends parsing under
    the default ``"stop"`` policy: it and every path after it are dropped.
    The ``"skip"`` policy drops only that path.

    Args:
        raw: Whitespace-separated paths as printed by the changes command.
        target_suffix: Appended to the target segment to match report names.
        source_token: Substring a filename must contain to count as source.
        on_short_path: ``"stop"`` or ``"skip"``.

    Returns:
        Changed files in first-seen order, without duplicates.

    Raises:
        ChangedFileParseError: On a malformed or non-source path.
        ValueError: If *on_short_path* is not a known policy.
    """
    if on_short_path not in SHORT_PATH_POLICIES:
        raise ValueError(f"Unknown short path policy: {on_short_path!r}")

    paths = _split_paths(raw)
    changed_files: list[ChangedFile] = []

    for index, path in enumerate(paths):
        if len(path.split("/")) < MIN_PATH_SEGMENTS:
            if on_short_path == ON_SHORT_PATH_SKIP:
                logger.warning("Skipping changed path with too few segments: %s", path)
                continue
            logger.warning(
                "Stopped parsing changed files at %s; %d remaining path(s) ignored",
                path,
                len(paths) - index - 1,
            )
            break

        changed_file = parse_changed_file(
            path, target_suffix=target_suffix, source_token=source_token
        )
        # Same file name in two folders of one target is one report entry
        if changed_file not in changed_files:
            changed_files.append(changed_file)

    logger.debug("Parsed %d changed file(s) from %d path(s)", len(changed_files), len(paths))
    return changed_files
