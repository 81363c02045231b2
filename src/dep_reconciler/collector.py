"""
Import collection for a Go source tree.

Walks the tree, parses every file that is not excluded and turns each
third-party import path into a dependency key comparable with Gopkg.toml
names.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from .error_handling import (
    CollectionError,
    ErrorCategory,
    ImportFormatError,
    get_error_handler,
    log_import_format_error,
    log_parsing_error,
)
from .go_imports import GoSyntaxError, GoUnquoteError, parse_imports, unquote
from .matcher import ExcludePattern, MatchMode, matches
from .structured_logging import (
    log_collection_complete,
    log_collection_start,
    log_file_skipped,
)

DEFAULT_SEGMENTS = 3


class GopkgInRule:
    """
    Segment rule for gopkg.in, which serves two path forms:

    - ``gopkg.in/pkg.vN`` (2 segments), e.g. gopkg.in/yaml.v2
    - ``gopkg.in/user/pkg.vN`` (3 segments), e.g. gopkg.in/DataDog/dd-trace-go.v1
    """

    _VERSIONED = re.compile(r"\.v\d+")

    def segments(self, parts: Sequence[str]) -> int:
        if len(parts) > 1 and self._VERSIONED.search(parts[1]):
            return 2
        return 3

    def __str__(self) -> str:
        return "2 (pkg.vN) or 3 (user/pkg.vN)"


HostRule = Union[int, GopkgInRule]

# Number of leading path segments that name one repository, for hosts
# that do not follow the host/org/repo layout.
HOST_SEGMENTS: Dict[str, HostRule] = {
    "gopkg.in": GopkgInRule(),
    # host/module
    "google.golang.org": 2,
    "cloud.google.com": 2,
    "go.uber.org": 2,
    "go.etcd.io": 2,
    "go.mongodb.org": 2,
    "k8s.io": 2,
    "sigs.k8s.io": 2,
    # the host is the repository
    "gotest.tools": 1,
    "go.opencensus.io": 1,
    "gocloud.dev": 1,
    "go4.org": 1,
}

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass(frozen=True)
class CollectedImports:
    """Outcome of walking a source tree."""

    keys: FrozenSet[str]
    files_scanned: int = 0
    files_skipped: int = 0
    files_excluded: int = 0
    oversized: Tuple[str, ...] = ()


def is_external(import_path: str) -> bool:
    """
    Report whether an import path names a third-party module.

    Standard library and module-local imports have no dot in their first
    path element ("fmt", "net/http", "internal/foo").
    """
    return "." in import_path.split("/", 1)[0]


def segments_for(
    import_path: str, host_segments: Optional[Mapping[str, HostRule]] = None
) -> int:
    """Return how many leading segments of ``import_path`` identify its repository."""
    parts = import_path.split("/")
    host = parts[0]
    if host_segments and host in host_segments:
        rule = host_segments[host]
    else:
        rule = HOST_SEGMENTS.get(host, DEFAULT_SEGMENTS)

    if isinstance(rule, int):
        return rule
    return rule.segments(parts)


def normalize_import(
    import_path: str, host_segments: Optional[Mapping[str, HostRule]] = None
) -> str:
    """
    Reduce an import path to the dependency key of its repository.

    Examples:
        github.com/pkg/errors/sub -> github.com/pkg/errors
        google.golang.org/grpc/codes -> google.golang.org/grpc
        gopkg.in/DataDog/dd-trace-go.v1/ddtrace -> gopkg.in/DataDog/dd-trace-go.v1

    Raises:
        ImportFormatError: If the path is shorter than its host requires
    """
    parts = import_path.split("/")
    required = segments_for(import_path, host_segments)
    if len(parts) < required:
        raise ImportFormatError(
            f"unexpected import format: {import_path!r} "
            f"(expected at least {required} path segments for {parts[0]})"
        )
    return "/".join(parts[:required])


def _relative(path: str, root: str) -> str:
    rel = os.path.relpath(path, root)
    return Path(rel).as_posix()


def _iter_files(
    root: str, exclude_paths: Tuple[ExcludePattern, ...], excluded: list
) -> Iterator[Tuple[str, str]]:
    def on_error(err: OSError):
        get_error_handler().error(
            ErrorCategory.FILESYSTEM,
            f"Cannot walk directory: {err}",
            "collector",
            "_iter_files",
            exception=err,
        )
        raise CollectionError(f"cannot walk {err.filename}: {err.strerror}") from err

    # Only glob patterns name directories; regex and prefix patterns are
    # tested against file paths.
    prune = tuple(p for p in exclude_paths if p.mode == MatchMode.GLOB)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        kept = []
        for name in sorted(dirnames):
            rel = _relative(os.path.join(dirpath, name), root)
            if matches(prune, rel):
                excluded.append(rel)
            else:
                kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            full = os.path.join(dirpath, name)
            rel = _relative(full, root)
            if matches(exclude_paths, rel):
                excluded.append(rel)
                continue
            if os.path.isfile(full):
                yield full, rel


def _file_size(full_path: str, rel_path: str) -> int:
    try:
        return os.path.getsize(full_path)
    except OSError as e:
        raise CollectionError(f"cannot read {rel_path}: {e}") from e


def _read_source(full_path: str, rel_path: str) -> Optional[str]:
    try:
        with open(full_path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError:
        log_file_skipped(rel_path, "not utf-8")
        return None
    except OSError as e:
        get_error_handler().error(
            ErrorCategory.FILESYSTEM,
            f"Cannot read file: {e}",
            "collector",
            "_read_source",
            exception=e,
            details={"file_path": rel_path},
        )
        raise CollectionError(f"cannot read {rel_path}: {e}") from e


def collect(
    root,
    exclude_paths: Iterable[ExcludePattern] = (),
    exclude_imports: Iterable[ExcludePattern] = (),
    host_segments: Optional[Mapping[str, HostRule]] = None,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> CollectedImports:
    """
    Collect the dependency keys imported anywhere under ``root``.

    Every regular file is offered to the Go parser. Files that do not
    parse (including non-Go files such as Gopkg.toml) contribute nothing
    and the walk continues.

    Args:
        root: Directory to walk
        exclude_paths: Patterns matched against root-relative file paths;
            directories matching a glob pattern are not descended into
        exclude_imports: Patterns matched against unquoted import paths
        host_segments: Extra entries for the host segment table
        max_file_size: Files larger than this many bytes are skipped with
            a warning and listed in ``oversized``

    Returns:
        CollectedImports: The dependency keys and walk statistics

    Raises:
        CollectionError: If the tree cannot be walked or a file read
        ImportFormatError: If an import literal cannot be unquoted or is
            too short for its host
    """
    root = str(root)
    exclude_paths = tuple(exclude_paths)
    exclude_imports = tuple(exclude_imports)

    if not os.path.isdir(root):
        raise CollectionError(f"not a directory: {root}")

    log_collection_start(root, len(exclude_paths), len(exclude_imports))

    keys: Set[str] = set()
    excluded: list = []
    oversized: List[str] = []
    scanned = 0
    skipped = 0

    for full_path, rel_path in _iter_files(root, exclude_paths, excluded):
        size = _file_size(full_path, rel_path)
        if size > max_file_size:
            get_error_handler().warning(
                ErrorCategory.FILESYSTEM,
                f"Skipped {rel_path} ({size} bytes): larger than {max_file_size} bytes",
                "collector",
                "collect",
                details={"file_path": rel_path, "size": size},
                suggestions=["Raise security.max_file_size_mb to check this file"],
            )
            oversized.append(rel_path)
            skipped += 1
            continue

        source = _read_source(full_path, rel_path)
        if source is None:
            skipped += 1
            continue

        try:
            literals = parse_imports(source)
        except GoSyntaxError as e:
            log_parsing_error(
                "Not a Go source file",
                "collector",
                "collect",
                file_path=rel_path,
                exception=e,
            )
            log_file_skipped(rel_path, str(e))
            skipped += 1
            continue

        scanned += 1
        for literal in literals:
            try:
                import_path = unquote(literal)
            except GoUnquoteError as e:
                log_import_format_error(
                    f"Cannot unquote import {literal}",
                    "collector",
                    "collect",
                    import_path=literal,
                    file_path=rel_path,
                    exception=e,
                )
                raise ImportFormatError(f"{rel_path}: {e}") from e

            if not is_external(import_path):
                continue

            if matches(exclude_imports, import_path):
                continue

            try:
                keys.add(normalize_import(import_path, host_segments))
            except ImportFormatError as e:
                log_import_format_error(
                    str(e),
                    "collector",
                    "collect",
                    import_path=import_path,
                    file_path=rel_path,
                )
                raise ImportFormatError(f"{rel_path}: {e}") from e

    log_collection_complete(scanned, skipped, len(excluded), len(keys))

    return CollectedImports(
        keys=frozenset(keys),
        files_scanned=scanned,
        files_skipped=skipped,
        files_excluded=len(excluded),
        oversized=tuple(oversized),
    )
