"""Git utilities for covgate.

Lists files changed between a base ref and ``HEAD`` as an alternative to a
project-provided diff-listing script.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_GIT_REF_MAX_LENGTH = 255
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f \~\^:\?\*\[\]\\;|&$`()<>{}!#'\"]")


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref to prevent injection and malformed inputs.

    Raises:
        GitOperationError: If the ref is invalid.
    """
    if not ref:
        raise GitOperationError("Git ref must not be empty")
    if len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref exceeds {_GIT_REF_MAX_LENGTH} characters")
    if _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Git ref contains unsafe characters: {ref!r}")
    if ref.startswith("-"):
        raise GitOperationError("Git ref must not start with a dash")
    if ".." in ref:
        raise GitOperationError("Git ref must not contain '..'")


def get_changed_paths(repo_path: Path | str, base_ref: str) -> str:
    """Return paths changed on ``HEAD`` since it diverged from *base_ref*.

    Uses ``git diff --name-only --diff-filter=d base_ref...HEAD``, so deleted
    files are left out and the output is one path per line, relative to the
    repository root.

    Args:
        repo_path: Path to git repository.
        base_ref: Branch, tag or SHA to compare against (e.g. ``origin/main``).

    Returns:
        Newline-separated paths, as printed by git.

    Raises:
        GitOperationError: If the ref is invalid or git fails.
    """
    _validate_git_ref(base_ref)
    path = Path(repo_path)
    try:
        result = subprocess.run(  # noqa: S603
            [
                _git_executable(),
                "diff",
                "--name-only",
                "--diff-filter=d",
                f"{base_ref}...HEAD",
            ],
            cwd=path,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        msg = f"Failed to list changes against {base_ref}: {exc.stderr.strip() or exc}"
        raise GitOperationError(msg) from exc
    except FileNotFoundError as exc:
        raise GitOperationError("git executable not found") from exc

    logger.debug("git diff against %s listed %d path(s)", base_ref, len(result.stdout.split()))
    return result.stdout
