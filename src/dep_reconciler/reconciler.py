"""
Reconciliation of collected imports against declared dependencies.

Implements the check the CLI runs: collect imports, load the manifest,
and report every dependency key that is imported but not declared.
"""

import os
import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from .collector import DEFAULT_MAX_FILE_SIZE, HostRule, collect
from .manifest import MANIFEST_FILENAME, load
from .matcher import DEFAULT_MATCH_MODE, MatchMode, compile_patterns
from .structured_logging import (
    clear_run_context,
    log_reconcile_complete,
    set_run_context,
)


@dataclass(frozen=True)
class CheckConfig:
    """Everything a check needs, resolved before the check starts."""

    root: str = "."
    exclude: Tuple[str, ...] = ()
    exclude_imports: Tuple[str, ...] = ()
    match_mode: MatchMode = DEFAULT_MATCH_MODE
    manifest_name: str = MANIFEST_FILENAME
    host_segments: Dict[str, HostRule] = field(default_factory=dict)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.root, self.manifest_name)


@dataclass(frozen=True)
class ReconciliationResult:
    """Complete results of a check."""

    collected: FrozenSet[str]
    declared: FrozenSet[str]
    missing: Tuple[str, ...]
    files_scanned: int = 0
    files_skipped: int = 0
    files_excluded: int = 0
    oversized: Tuple[str, ...] = ()
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """True when every imported dependency is declared."""
        return not self.missing

    @property
    def unused(self) -> Tuple[str, ...]:
        """Declared dependency keys that no scanned file imports."""
        return tuple(sorted(self.declared - self.collected))


def reconcile(collected: Iterable[str], declared: Iterable[str]) -> Tuple[str, ...]:
    """Return the collected keys absent from ``declared``, sorted."""
    return tuple(sorted(set(collected) - set(declared)))


def check(config: CheckConfig, run_id: Optional[str] = None) -> ReconciliationResult:
    """
    Run a full check of a source tree against its manifest.

    The exclude patterns are compiled first so a malformed pattern fails
    before any file is read.

    Args:
        config: Resolved check configuration
        run_id: Optional identifier attached to log events

    Returns:
        ReconciliationResult: The collected, declared and missing keys

    Raises:
        ConfigError: If an exclude pattern is invalid
        CollectionError: If the source tree cannot be walked
        ImportFormatError: If an import is malformed
        ManifestIOError: If the manifest cannot be read
        ManifestFormatError: If the manifest cannot be decoded
    """
    start_time = time.time()
    exclude_paths = compile_patterns(config.exclude, config.match_mode)
    exclude_imports = compile_patterns(config.exclude_imports, config.match_mode)

    set_run_context(run_id=run_id or f"check_{int(start_time)}", root=config.root)
    try:
        collected = collect(
            config.root,
            exclude_paths,
            exclude_imports,
            host_segments=config.host_segments,
            max_file_size=config.max_file_size,
        )
        declared = load(config.manifest_path)

        missing = reconcile(collected.keys, declared)
        log_reconcile_complete(len(collected.keys), len(declared), len(missing))
    finally:
        clear_run_context()

    return ReconciliationResult(
        collected=collected.keys,
        declared=declared,
        missing=missing,
        files_scanned=collected.files_scanned,
        files_skipped=collected.files_skipped,
        files_excluded=collected.files_excluded,
        oversized=collected.oversized,
        duration_ms=int((time.time() - start_time) * 1000),
    )
