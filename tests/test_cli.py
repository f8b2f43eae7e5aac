"""Tests for the covgate CLI command."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from covgate import __version__
from covgate.cli import cli
from covgate.utils.git import GitOperationError

if TYPE_CHECKING:
    from pathlib import Path


def _report(files_by_target: dict[str, dict[str, float]]) -> dict[str, Any]:
    """Build an xccov report with one entry per (target, file, ratio)."""
    targets = []
    for target, files in files_by_target.items():
        targets.append(
            {
                "buildProductPath": f"/DerivedData/Build/Products/Debug/{target}",
                "coveredLines": 10,
                "executableLines": 10,
                "files": [
                    {
                        "coveredLines": 10,
                        "executableLines": 10,
                        "functions": [],
                        "lineCoverage": ratio,
                        "name": name,
                        "path": f"/App/{target}/{name}",
                    }
                    for name, ratio in files.items()
                ],
                "lineCoverage": 1.0,
                "name": target,
            }
        )
    return {"coveredLines": 10, "executableLines": 10, "lineCoverage": 1.0, "targets": targets}


_TWO_TARGETS = {
    "Home.framework": {"HomeView.swift": 0.725},
    "Profile.framework": {"ProfileView.swift": 0.91},
}


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project root used as the working directory for each invocation."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("COVGATE_CHANGES_COMMAND", raising=False)
    return tmp_path


def _write_changes(root: Path, *paths: str) -> None:
    (root / "changes.txt").write_text("\n".join(paths) + "\n", encoding="utf-8")


def _write_report(root: Path, data: dict[str, Any], name: str = "coverage.json") -> None:
    (root / name).write_text(json.dumps(data), encoding="utf-8")


def _invoke(root: Path, *args: str) -> Any:
    runner = CliRunner()
    return runner.invoke(
        cli,
        ["--path", str(root), "--changes-command", "cat changes.txt", "--no-color", *args],
    )


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "--base-ref" in result.output
    assert "Usage: covgate" in result.output


# ── Arguments ─────────────────────────────────────────────────────────


class TestArguments:
    def test_missing_report_argument(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/HomeView.swift")

        result = _invoke(project)

        assert result.exit_code == 1
        assert "Incorrect parameters." in result.output
        assert "Usage: covgate file.json" in result.output

    def test_too_many_arguments(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/HomeView.swift")

        result = _invoke(project, "a.json", "b.json")

        assert result.exit_code == 1
        assert "Usage: covgate file.json" in result.output

    def test_no_changes_without_argument_succeeds(self, project: Path) -> None:
        (project / "changes.txt").write_text("", encoding="utf-8")

        result = _invoke(project)

        assert result.exit_code == 0
        assert "No changes found." in result.output
        assert "Incorrect parameters." not in result.output

    def test_no_changes_with_extra_arguments_succeeds(self, project: Path) -> None:
        (project / "changes.txt").write_text("", encoding="utf-8")

        result = _invoke(project, "a.json", "b.json")

        assert result.exit_code == 0
        assert "No changes found." in result.output


# ── Gate outcomes ─────────────────────────────────────────────────────


class TestGate:
    def test_mixed_results_fail(self, project: Path) -> None:
        _write_changes(
            project,
            "Home/Sources/Views/HomeView.swift",
            "Profile/Sources/Views/ProfileView.swift",
        )
        _write_report(project, _report(_TWO_TARGETS))

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert "Code Coverage Report" in result.output
        assert "    ⨯ [Home.framework] HomeView.swift (72.50%)" in result.output
        assert "    ✓ [Profile.framework] ProfileView.swift (91.00%)" in result.output
        assert result.output.count("⨯") == 1
        assert "Fail, please add code coverage in the files indicated above." in result.output

    def test_all_passing(self, project: Path) -> None:
        _write_changes(project, "Profile/Sources/Views/ProfileView.swift")
        _write_report(project, _report(_TWO_TARGETS))

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 0, result.output
        assert "ProfileView.swift (91.00%)" in result.output
        assert "HomeView.swift" not in result.output
        assert result.output.rstrip().endswith("Success")

    def test_exactly_threshold_fails(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/HomeView.swift")
        _write_report(project, _report({"Home.framework": {"HomeView.swift": 0.8}}))

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert "⨯ [Home.framework] HomeView.swift (80.00%)" in result.output

    def test_unmatched_file_does_not_fail(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/NewView.swift")
        _write_report(project, _report(_TWO_TARGETS))

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 0, result.output
        assert "? [Home.framework] NewView.swift (no coverage data)" in result.output
        assert "Success" in result.output

    def test_unmatched_hidden_by_config(self, project: Path) -> None:
        (project / ".covgate.yml").write_text(
            yaml.dump({"report": {"warn_unmatched": False}}), encoding="utf-8"
        )
        _write_changes(project, "Home/Sources/Views/NewView.swift")
        _write_report(project, _report(_TWO_TARGETS))

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 0
        assert "NewView.swift" not in result.output

    def test_short_path_stops_parsing(self, project: Path) -> None:
        _write_changes(
            project,
            "Home/Sources/Views/HomeView.swift",
            "README.md",
            "Profile/Sources/Views/ProfileView.swift",
        )
        _write_report(
            project,
            _report(
                {
                    "Home.framework": {"HomeView.swift": 0.95},
                    "Profile.framework": {"ProfileView.swift": 0.1},
                }
            ),
        )

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 0, result.output
        assert "HomeView.swift (95.00%)" in result.output
        assert "ProfileView.swift" not in result.output

    def test_short_path_skip_policy(self, project: Path) -> None:
        (project / ".covgate.yml").write_text(
            yaml.dump({"changes": {"on_short_path": "skip"}}), encoding="utf-8"
        )
        _write_changes(
            project,
            "Home/Sources/Views/HomeView.swift",
            "README.md",
            "Profile/Sources/Views/ProfileView.swift",
        )
        _write_report(
            project,
            _report(
                {
                    "Home.framework": {"HomeView.swift": 0.95},
                    "Profile.framework": {"ProfileView.swift": 0.1},
                }
            ),
        )

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert "⨯ [Profile.framework] ProfileView.swift (10.00%)" in result.output

    def test_json_output(self, project: Path) -> None:
        _write_changes(
            project,
            "Home/Sources/Views/HomeView.swift",
            "Home/Sources/Views/NewView.swift",
        )
        _write_report(project, _report(_TWO_TARGETS))

        result = _invoke(project, "--json-output", "coverage.json")

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["passed"] is False
        assert data["threshold"] == 80.0
        assert data["files"] == [
            {
                "target": "Home.framework",
                "name": "HomeView.swift",
                "coverage_percent": 72.5,
                "passing": False,
            }
        ]
        assert data["unmatched"] == [{"target": "Home.framework", "name": "NewView.swift"}]


# ── No changes ────────────────────────────────────────────────────────


class TestNoChanges:
    def test_empty_output_succeeds_without_report(self, project: Path) -> None:
        result = CliRunner().invoke(
            cli,
            ["--path", str(project), "--changes-command", "true", "--no-color", "missing.json"],
        )

        assert result.exit_code == 0
        assert result.output.strip() == (
            "Success. No changes found. Check that new sources have been added to Git."
        )

    def test_empty_output_json(self, project: Path) -> None:
        result = CliRunner().invoke(
            cli,
            ["--path", str(project), "--changes-command", "true", "--json-output", "x.json"],
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["passed"] is True

    def test_leading_short_path_means_no_changes(self, project: Path) -> None:
        _write_changes(project, "Package.swift", "Home/Sources/Views/HomeView.swift")

        result = _invoke(project, "missing.json")

        assert result.exit_code == 0
        assert "No changes found." in result.output


# ── Errors ────────────────────────────────────────────────────────────


class TestErrors:
    def test_missing_report_file(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/HomeView.swift")

        result = _invoke(project, "missing.json")

        assert result.exit_code == 1
        assert "Error: Invalid JSON at path:" in result.output
        assert "missing.json" in result.output

    def test_undecodable_report(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/HomeView.swift")
        (project / "coverage.json").write_text("{not json", encoding="utf-8")

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert "Error: Could not decode the report." in result.output

    def test_report_missing_field(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/HomeView.swift")
        data = _report(_TWO_TARGETS)
        del data["targets"][0]["files"][0]["lineCoverage"]
        _write_report(project, data)

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert "Error: Could not decode the report." in result.output

    def test_non_source_file(self, project: Path) -> None:
        _write_changes(project, "Home/Sources/Views/README.md")

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert (
            "Changed file parsing error: Home/Sources/Views/README.md "
            "is not a valid Swift source file"
        ) in result.output

    def test_invalid_config(self, project: Path) -> None:
        (project / ".covgate.yml").write_text(
            yaml.dump({"report": {"color": "rainbow"}}), encoding="utf-8"
        )

        result = _invoke(project, "coverage.json")

        assert result.exit_code == 1
        assert "Found 1 configuration error(s):" in result.output
        assert "report.color must be one of auto, always, never" in result.output


# ── --base-ref ────────────────────────────────────────────────────────


class TestBaseRef:
    def test_uses_git_diff(self, project: Path) -> None:
        _write_report(project, _report(_TWO_TARGETS))

        with patch(
            "covgate.cli.get_changed_paths",
            return_value="Profile/Sources/Views/ProfileView.swift\n",
        ) as mock_git, patch("covgate.cli.run_changes_command") as mock_run:
            result = CliRunner().invoke(
                cli,
                ["--path", str(project), "--base-ref", "origin/main", "--no-color", "coverage.json"],
            )

        assert result.exit_code == 0, result.output
        assert "ProfileView.swift (91.00%)" in result.output
        mock_git.assert_called_once()
        assert mock_git.call_args.args[1] == "origin/main"
        mock_run.assert_not_called()

    def test_git_error(self, project: Path) -> None:
        with patch(
            "covgate.cli.get_changed_paths",
            side_effect=GitOperationError("Invalid git reference: '-x'"),
        ):
            result = CliRunner().invoke(
                cli,
                ["--path", str(project), "--base-ref=-x", "--no-color", "coverage.json"],
            )

        assert result.exit_code == 1
        assert "Invalid git reference" in result.output
