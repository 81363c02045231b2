from pathlib import Path
from typing import FrozenSet, List

import toml

from .dependency import DeclaredDependency
from .error_handling import (
    ErrorCategory,
    ManifestFormatError,
    ManifestIOError,
    get_error_handler,
    redact_credentials,
)
from .structured_logging import log_dependency_declared, log_manifest_loaded

MANIFEST_FILENAME = "Gopkg.toml"

# Gopkg.toml tables whose entries declare a dependency
RECORD_TABLES = ("constraint", "override")

_PIN_FIELDS = ("version", "branch", "revision", "source")


def _read_manifest(path: Path) -> str:
    error_handler = get_error_handler()
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError as e:
        error_handler.error(
            ErrorCategory.FILESYSTEM,
            f"Manifest not found: {path}",
            "manifest",
            "_read_manifest",
            exception=e,
            suggestions=[f"Run from the directory containing {MANIFEST_FILENAME}"],
        )
        raise ManifestIOError(f"manifest not found: {path}") from e
    except UnicodeDecodeError as e:
        raise ManifestFormatError(f"{path}: manifest is not valid UTF-8") from e
    except OSError as e:
        error_handler.error(
            ErrorCategory.FILESYSTEM,
            f"Cannot read manifest: {e}",
            "manifest",
            "_read_manifest",
            exception=e,
            details={"file_path": str(path)},
        )
        raise ManifestIOError(f"cannot read manifest {path}: {e}") from e


def parse_manifest(file_path) -> List[DeclaredDependency]:
    """
    Parses a Gopkg.toml file and returns its declared dependencies.

    Dependencies are declared in repeatable tables:
    - [[constraint]] - pins for direct dependencies
    - [[override]] - pins that supersede constraints anywhere in the graph

    Each entry needs a ``name`` and may carry ``version``, ``branch``,
    ``revision`` and ``source``.

    Args:
        file_path: Path to the Gopkg.toml file

    Returns:
        List[DeclaredDependency]: Records in file order, constraints first

    Raises:
        ManifestIOError: If the file is missing or unreadable
        ManifestFormatError: If the file is not valid TOML or a record
            has no name
    """
    path = Path(file_path)
    content = _read_manifest(path)

    try:
        data = toml.loads(content)
    except toml.TomlDecodeError as e:
        get_error_handler().error(
            ErrorCategory.MANIFEST,
            f"Invalid TOML format in {path.name}: {e}",
            "manifest",
            "parse_manifest",
            exception=e,
            details={"file_path": str(path)},
        )
        raise ManifestFormatError(f"{path}: invalid TOML: {e}") from e

    dependencies = []
    for kind in RECORD_TABLES:
        entries = data.get(kind, [])
        if not isinstance(entries, list):
            raise ManifestFormatError(
                f"{path}: '{kind}' must be an array of tables ([[{kind}]])"
            )

        for index, entry in enumerate(entries):
            name = entry.get("name") if isinstance(entry, dict) else None
            if not isinstance(name, str) or not name:
                get_error_handler().error(
                    ErrorCategory.MANIFEST,
                    f"{kind} #{index + 1} has no name",
                    "manifest",
                    "parse_manifest",
                    details={"file_path": str(path)},
                )
                raise ManifestFormatError(f"{path}: {kind} #{index + 1} has no name")

            pins = {
                key: str(entry[key]) for key in _PIN_FIELDS if entry.get(key) is not None
            }
            dep = DeclaredDependency(name=name, kind=kind, source_file=str(path), **pins)
            log_dependency_declared(
                dep.name,
                dep.kind,
                dep.pin,
                redact_credentials(dep.source) if dep.source else None,
            )
            dependencies.append(dep)

    log_manifest_loaded(
        str(path),
        sum(1 for d in dependencies if d.kind == "constraint"),
        sum(1 for d in dependencies if d.kind == "override"),
    )
    return dependencies


def load(file_path) -> FrozenSet[str]:
    """Return the set of dependency keys a manifest declares."""
    return frozenset(dep.name for dep in parse_manifest(file_path))
