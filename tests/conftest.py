"""
Shared fixtures for dep-reconciler tests.
"""

from textwrap import dedent

import pytest

from dep_reconciler.cli_config import reset_config
from dep_reconciler.error_handling import setup_error_handling
from dep_reconciler.structured_logging import configure_logging

ENV_VARS = (
    "DEP_RECONCILER_EXCLUDE",
    "DEP_RECONCILER_EXCLUDE_IMPORT",
    "DEP_RECONCILER_MATCH_MODE",
    "DEP_RECONCILER_MAX_FILE_SIZE_MB",
    "DEP_RECONCILER_LOG_LEVEL",
)

MAIN_GO = """\
package main

import (
	"fmt"

	"github.com/foo/bar/baz"
)

func main() {
	fmt.Println(baz.Hello())
}
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep user config files and environment out of every test."""
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_config()
    setup_error_handling()
    configure_logging("CRITICAL")
    yield
    reset_config()
    configure_logging("CRITICAL")


@pytest.fixture
def temp_dir(tmp_path):
    """Empty project directory."""
    return tmp_path


@pytest.fixture
def write_tree(temp_dir):
    """Write a {relative_path: content} mapping under temp_dir."""

    def _write(files, root=None):
        base = root or temp_dir
        for rel_path, content in files.items():
            path = base / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(dedent(content), encoding="utf-8")
        return base

    return _write


@pytest.fixture
def go_project(write_tree):
    """A project whose only third-party import is github.com/foo/bar/baz."""
    return write_tree(
        {
            "main.go": MAIN_GO,
            "Gopkg.toml": """\
                [[constraint]]
                  name = "github.com/foo/bar"
                  version = "1.2.0"
            """,
        }
    )


@pytest.fixture
def undeclared_project(write_tree):
    """Same tree as go_project with a manifest that declares nothing."""
    return write_tree({"main.go": MAIN_GO, "Gopkg.toml": ""})
