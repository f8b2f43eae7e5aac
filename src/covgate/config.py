"""Configuration parsing from ``.covgate.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from covgate.reporters.terminal import COLOR_AUTO, COLOR_MODES
from covgate.utils.changes import (
    DEFAULT_CHANGES_COMMAND,
    DEFAULT_SOURCE_TOKEN,
    DEFAULT_TARGET_SUFFIX,
    ON_SHORT_PATH_STOP,
    SHORT_PATH_POLICIES,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".covgate.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


class ConfigError(Exception):
    """Raised when ``.covgate.yml`` cannot be loaded."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        else:
            result[key] = value
    return result


@dataclass
class ChangesConfig:
    """How changed files are listed and parsed."""

    command: str = DEFAULT_CHANGES_COMMAND
    """Shell command printing changed paths, run from the project root."""

    target_suffix: str = DEFAULT_TARGET_SUFFIX
    """Suffix appended to a path's first segment to form the report target name."""

    source_token: str = DEFAULT_SOURCE_TOKEN
    """Substring a changed filename must contain to count as source."""

    on_short_path: str = ON_SHORT_PATH_STOP
    """What to do with a path of too few segments: ``stop`` or ``skip``."""

    timeout: float | None = None
    """Seconds to wait for the command, or None to wait indefinitely."""


@dataclass
class ReportConfig:
    """Output configuration."""

    color: str = COLOR_AUTO
    """Color mode: ``auto``, ``always`` or ``never``."""

    warn_unmatched: bool = True
    """List changed files that have no coverage data."""


@dataclass
class CovgateConfig:
    """Complete covgate configuration."""

    changes: ChangesConfig = field(default_factory=ChangesConfig)
    """Changed-file discovery configuration."""

    report: ReportConfig = field(default_factory=ReportConfig)
    """Output configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for debugging."""


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        logger.warning("Ignoring non-mapping '%s' section in %s", name, CONFIG_FILENAME)
        return {}
    return section


def _parse_changes_config(raw: dict[str, Any]) -> ChangesConfig:
    """Parse the ``changes`` section, falling back to environment defaults."""
    changes_raw = _section(raw, "changes")
    timeout = changes_raw.get("timeout")

    return ChangesConfig(
        command=str(
            changes_raw.get(
                "command", os.environ.get("COVGATE_CHANGES_COMMAND", DEFAULT_CHANGES_COMMAND)
            )
        ),
        target_suffix=str(changes_raw.get("target_suffix", DEFAULT_TARGET_SUFFIX)),
        source_token=str(changes_raw.get("source_token", DEFAULT_SOURCE_TOKEN)),
        on_short_path=str(changes_raw.get("on_short_path", ON_SHORT_PATH_STOP)),
        timeout=float(timeout) if timeout is not None else None,
    )


def _parse_report_config(raw: dict[str, Any]) -> ReportConfig:
    """Parse the ``report`` section."""
    report_raw = _section(raw, "report")

    return ReportConfig(
        color=str(report_raw.get("color", COLOR_AUTO)),
        warn_unmatched=bool(report_raw.get("warn_unmatched", True)),
    )


def load_config(root: str | Path) -> CovgateConfig:
    """Load ``.covgate.yml`` from *root*.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        try:
            parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read {config_file}: {exc}") from exc
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        logger.debug("Loaded configuration from %s", config_file)

    try:
        return CovgateConfig(
            changes=_parse_changes_config(raw),
            report=_parse_report_config(raw),
            raw=raw,
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value in {config_file}: {exc}") from exc


def _validate_changes_config(changes: ChangesConfig) -> list[str]:
    errors: list[str] = []

    if not changes.command.strip():
        errors.append("changes.command must not be empty")

    if not changes.source_token:
        errors.append("changes.source_token must not be empty")

    if changes.on_short_path not in SHORT_PATH_POLICIES:
        errors.append(
            f"changes.on_short_path must be one of {', '.join(SHORT_PATH_POLICIES)} "
            f"(got: {changes.on_short_path})"
        )

    if changes.timeout is not None and changes.timeout <= 0:
        errors.append(f"changes.timeout must be positive (got: {changes.timeout})")

    return errors


def _validate_report_config(report: ReportConfig) -> list[str]:
    if report.color not in COLOR_MODES:
        return [f"report.color must be one of {', '.join(COLOR_MODES)} (got: {report.color})"]
    return []


def validate_config(config: CovgateConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    errors.extend(_validate_changes_config(config.changes))
    errors.extend(_validate_report_config(config.report))
    return errors
