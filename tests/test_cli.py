"""Smoke tests for the CLI.

These tests verify the CLI commands against build files in a temporary
directory.
"""

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from html_pagegen import __version__
from html_pagegen.cli import app

runner = CliRunner()

SCRIPT = '<script type="text/javascript" src="app.js"></script>'


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log records out of the captured output."""
    monkeypatch.setenv("HTML_PAGEGEN_LOG_LEVEL", "ERROR")


@pytest.fixture
def build_file(tmp_path: Path) -> Path:
    """A build file with one chunk and one page."""
    (tmp_path / "page.html").write_text("<html><head></head><body></body></html>")
    path = tmp_path / "build.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "chunks": [
                    {"id": 0, "names": ["app"], "files": ["app.js"], "entry": True}
                ],
                "pages": [{"template": "page.html"}],
            }
        )
    )
    return path


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "HTML page generator" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        """CLI with no args should show help."""
        result = runner.invoke(app, [])
        assert "Usage:" in result.stdout


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self) -> None:
        """CLI config should show configuration."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Page defaults:" in result.stdout
        assert "Log level" in result.stdout

    def test_config_json(self) -> None:
        """CLI config --json should output JSON."""
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["log_level"] == "ERROR"


class TestCLIBuild:
    """Test CLI build command."""

    def test_build_writes_page(self, build_file: Path) -> None:
        """build generates and writes the declared page."""
        result = runner.invoke(app, ["build", str(build_file)])
        assert result.exit_code == 0
        assert "index.html" in result.stdout
        page = build_file.parent / "dist" / "index.html"
        assert page.read_text() == f"<html><head></head><body>{SCRIPT}</body></html>"

    def test_build_dry_run(self, build_file: Path) -> None:
        """--dry-run generates without writing."""
        result = runner.invoke(app, ["build", str(build_file), "--dry-run"])
        assert result.exit_code == 0
        assert "dry run" in result.stdout
        assert not (build_file.parent / "dist").exists()

    def test_build_json(self, build_file: Path) -> None:
        """--json reports the pass as JSON."""
        result = runner.invoke(app, ["build", str(build_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["generated"] == ["index.html"]
        assert data["errors"] == []
        assert len(data["written"]) == 1

    def test_build_errors_exit_nonzero(self, build_file: Path) -> None:
        """A pass with errors exits with code 1 and still writes a page."""
        data = yaml.safe_load(build_file.read_text())
        data["pages"][0]["chunks_sort_mode"] = "alphabetical"
        build_file.write_text(yaml.safe_dump(data))

        result = runner.invoke(app, ["build", str(build_file), "--json"])
        assert result.exit_code == 1
        output = json.loads(result.stdout)
        assert "is not a valid chunk sort mode" in output["errors"][0]
        page = build_file.parent / "dist" / "index.html"
        assert page.read_text().startswith("Html Page Plugin:")

    def test_build_missing_file(self, tmp_path: Path) -> None:
        """build fails for a missing build file."""
        result = runner.invoke(app, ["build", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_build_invalid_file(self, tmp_path: Path) -> None:
        """build fails for an invalid build file."""
        path = tmp_path / "build.yaml"
        path.write_text(yaml.safe_dump({"chunks": [{"id": -1}]}))
        result = runner.invoke(app, ["build", str(path)])
        assert result.exit_code == 1
        assert "Invalid build file" in result.stdout


class TestCLIValidate:
    """Test CLI validate command."""

    def test_valid(self, build_file: Path) -> None:
        """validate accepts a valid build file."""
        result = runner.invoke(app, ["validate", str(build_file)])
        assert result.exit_code == 0
        assert "Valid build file" in result.stdout
        assert "Chunks: 1" in result.stdout

    def test_invalid(self, tmp_path: Path) -> None:
        """validate rejects a build file with duplicate chunk ids."""
        path = tmp_path / "build.json"
        path.write_text(json.dumps({"chunks": [{"id": 1}, {"id": 1}]}))
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Validation failed" in result.stdout

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        """validate rejects unsupported file types."""
        path = tmp_path / "build.txt"
        path.write_text("")
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Unsupported file extension" in result.stdout
