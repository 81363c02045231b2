"""
CLI interface tests for dep-reconciler.
Tests the command-line interface and main entry points.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dep_reconciler.collector import GopkgInRule
from dep_reconciler.main import cli
from dep_reconciler.reconciler import ReconciliationResult


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        """Test CLI help message."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "dep-reconciler" in result.output.lower()

    def test_cli_version(self):
        """Test CLI version display."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_info_command(self):
        """Test the info command."""
        runner = CliRunner()
        result = runner.invoke(cli, ["info"])

        assert result.exit_code == 0
        assert "dep-reconciler" in result.output.lower()
        assert "gopkg.in" in result.output

    def test_check_help(self):
        """Test check command help lists the exclude flags."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--help"])

        assert result.exit_code == 0
        assert "--exclude" in result.output
        assert "--exclude-import" in result.output


class TestCheckCommand:
    """Test the check command against real trees."""

    def test_all_declared(self, go_project, monkeypatch):
        """Test that a passing check prints nothing and exits 0."""
        monkeypatch.chdir(go_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 0
        assert result.output == ""

    def test_undeclared_import(self, undeclared_project, monkeypatch):
        """Test that a missing dependency is listed and fails the check."""
        monkeypatch.chdir(undeclared_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 1
        lines = result.output.splitlines()
        assert "Missing import paths:" in lines
        assert "github.com/foo/bar" in lines
        assert "fmt" not in lines

    def test_exclude_file(self, undeclared_project, monkeypatch):
        """Test that an excluded file contributes no imports."""
        monkeypatch.chdir(undeclared_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--exclude", r"main\.go"])

        assert result.exit_code == 0
        assert result.output == ""

    def test_exclude_import(self, undeclared_project, monkeypatch):
        """Test that an excluded import is not reported."""
        monkeypatch.chdir(undeclared_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--exclude-import", "^github.com/foo/"])

        assert result.exit_code == 0

    def test_glob_match_mode(self, write_tree, monkeypatch):
        """Test excluding a directory by glob."""
        root = write_tree(
            {
                "main.go": 'package main\nimport "github.com/foo/bar"\n',
                "vendor/x/x.go": 'package x\nimport "github.com/vendored/x"\n',
                "Gopkg.toml": '[[constraint]]\n  name = "github.com/foo/bar"\n',
            }
        )
        monkeypatch.chdir(root)
        runner = CliRunner()

        failing = runner.invoke(cli, ["check"])
        assert failing.exit_code == 1
        assert "github.com/vendored/x" in failing.output

        passing = runner.invoke(cli, ["check", "--match-mode", "GLOB", "--exclude", "vendor"])
        assert passing.exit_code == 0

    def test_missing_keys_sorted(self, write_tree, monkeypatch):
        """Test that missing keys are printed in order, once each."""
        root = write_tree(
            {
                "b.go": 'package b\nimport (\n\t"gopkg.in/yaml.v2"\n\t"github.com/z/z/sub"\n)\n',
                "a.go": 'package a\nimport (\n\t"github.com/z/z"\n\t"github.com/a/a"\n)\n',
                "Gopkg.toml": "",
            }
        )
        monkeypatch.chdir(root)
        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 1
        assert result.output.splitlines() == [
            "Missing import paths:",
            "github.com/a/a",
            "github.com/z/z",
            "gopkg.in/yaml.v2",
        ]

    def test_invalid_exclude_pattern(self, go_project, monkeypatch):
        """Test that a malformed regex is a fatal configuration error."""
        monkeypatch.chdir(go_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--exclude", "("])

        assert result.exit_code == 1
        assert "invalid exclude pattern" in result.output

    def test_missing_manifest(self, write_tree, monkeypatch):
        """Test running in a directory without Gopkg.toml."""
        root = write_tree({"main.go": "package main\n"})
        monkeypatch.chdir(root)
        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "manifest not found" in result.output

    def test_malformed_import(self, write_tree, monkeypatch):
        """Test that an import too short for its host aborts the check."""
        root = write_tree(
            {"main.go": 'package main\nimport "github.com/foo"\n', "Gopkg.toml": ""}
        )
        monkeypatch.chdir(root)
        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "unexpected import format" in result.output

    def test_json_output(self, undeclared_project, monkeypatch):
        """Test JSON output format."""
        monkeypatch.chdir(undeclared_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--output-format", "json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["ok"] is False
        assert data["missing"] == ["github.com/foo/bar"]
        assert data["summary"]["files_scanned"] == 1

    def test_verbose_summary(self, go_project, monkeypatch):
        """Test that verbose mode prints a summary on success."""
        monkeypatch.chdir(go_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--verbose"])

        assert result.exit_code == 0
        assert "Dependency Check" in result.output

    def test_quiet_overrides_verbose(self, go_project, monkeypatch):
        """Test that quiet wins over verbose."""
        monkeypatch.chdir(go_project)
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "-v", "-q"])

        assert result.exit_code == 0
        assert result.output == ""

    @patch("dep_reconciler.main.run_check")
    def test_keyboard_interrupt(self, mock_check, go_project, monkeypatch):
        """Test handling of user interruption."""
        mock_check.side_effect = KeyboardInterrupt()
        monkeypatch.chdir(go_project)

        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 130
        assert "interrupted" in result.output

    @patch("dep_reconciler.main.run_check")
    def test_flags_reach_check(self, mock_check, go_project, monkeypatch):
        """Test that flags and config are merged into the check config."""
        mock_check.return_value = ReconciliationResult(
            collected=frozenset(), declared=frozenset(), missing=()
        )
        monkeypatch.chdir(go_project)
        monkeypatch.setenv("DEP_RECONCILER_EXCLUDE", "^gen/")

        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "check",
                "--exclude",
                "^vendor/",
                "--exclude-import",
                "^github.com/myorg/",
                "--match-mode",
                "prefix",
            ],
        )

        assert result.exit_code == 0
        check_config = mock_check.call_args[0][0]
        assert check_config.exclude == ("^gen/", "^vendor/")
        assert check_config.exclude_imports == ("^github.com/myorg/",)
        assert check_config.match_mode.value == "prefix"
        assert check_config.host_segments["k8s.io"] == 2
        assert isinstance(check_config.host_segments["gopkg.in"], GopkgInRule)


class TestConfigCommands:
    """Test configuration management commands."""

    def test_config_init(self, temp_dir, monkeypatch):
        """Test creating a sample configuration file."""
        monkeypatch.chdir(temp_dir)
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "init"])

        assert result.exit_code == 0
        data = json.loads((temp_dir / ".dep-reconciler.json").read_text())
        assert data["scan"]["match_mode"] == "regex"

    def test_config_init_existing(self, temp_dir, monkeypatch):
        """Test that init does not overwrite without --force."""
        monkeypatch.chdir(temp_dir)
        (temp_dir / ".dep-reconciler.json").write_text("{}")
        runner = CliRunner()

        result = runner.invoke(cli, ["config", "init"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert (temp_dir / ".dep-reconciler.json").read_text() == "{}"

        result = runner.invoke(cli, ["config", "init", "--force"])
        assert result.exit_code == 0
        assert "scan" in json.loads((temp_dir / ".dep-reconciler.json").read_text())

    def test_config_show(self, temp_dir, monkeypatch):
        """Test showing the effective configuration."""
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("DEP_RECONCILER_MATCH_MODE", "glob")
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "Match Mode: glob" in result.output

    @pytest.mark.parametrize("filename", ["cfg.json", "cfg.yaml"])
    def test_config_validate_valid(self, temp_dir, monkeypatch, filename):
        """Test validating a correct JSON or YAML config file."""
        monkeypatch.chdir(temp_dir)
        if filename.endswith(".json"):
            content = json.dumps({"scan": {"exclude": ["^vendor/"], "match_mode": "glob"}})
        else:
            content = "scan:\n  exclude:\n    - vendor\n  match_mode: glob\n"
        (temp_dir / filename).write_text(content)

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "validate", filename])

        assert result.exit_code == 0
        assert "valid" in result.output

    def test_config_validate_invalid(self, temp_dir, monkeypatch):
        """Test validating a config file with bad values."""
        monkeypatch.chdir(temp_dir)
        (temp_dir / "cfg.json").write_text(
            json.dumps(
                {
                    "scan": {"match_mode": "fuzzy"},
                    "security": {"max_file_size_mb": 0},
                    "hosts": {"host_segments": {"go.example.com": "two"}},
                }
            )
        )

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "validate", "cfg.json"])

        assert result.exit_code == 1
        assert "scan.match_mode" in result.output
        assert "security.max_file_size_mb" in result.output
        assert "go.example.com" in result.output

    def test_config_validate_unreadable(self, temp_dir, monkeypatch):
        """Test validating a file that is not a config mapping."""
        monkeypatch.chdir(temp_dir)
        (temp_dir / "cfg.json").write_text("[1, 2, 3]")

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "validate", "cfg.json"])

        assert result.exit_code == 1
        assert "Could not load config" in result.output
