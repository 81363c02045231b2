"""
Structured logging configuration for dep-reconciler.

Provides machine-readable JSON events for the collection, manifest and
reconciliation stages. Events go to stderr. The default level is CRITICAL,
which no event uses, so a check prints nothing unless a level is chosen.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_RECORD_KEYS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ComponentLogger:
    """Structured logger for one stage of a check."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"dep_reconciler.{name}")
        self._setup_logger()
        self.run_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.CRITICAL)
            self.logger.propagate = False

    def set_run_context(
        self, run_id: Optional[str] = None, root: Optional[str] = None
    ) -> None:
        """Set run context for logging."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if root:
            self.run_context["root"] = root

    def clear_run_context(self) -> None:
        """Clear run context."""
        self.run_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        getattr(self.logger, level)("", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


# Global logger instances
_collector_logger = ComponentLogger("collector")
_manifest_logger = ComponentLogger("manifest")
_reconciler_logger = ComponentLogger("reconciler")

_ALL_LOGGERS = (_collector_logger, _manifest_logger, _reconciler_logger)


def get_collector_logger() -> ComponentLogger:
    """Get import collection logger."""
    return _collector_logger


def get_manifest_logger() -> ComponentLogger:
    """Get manifest loading logger."""
    return _manifest_logger


def get_reconciler_logger() -> ComponentLogger:
    """Get reconciliation logger."""
    return _reconciler_logger


def log_collection_start(root: str, exclude_count: int, exclude_import_count: int) -> None:
    """Log the start of a source tree walk."""
    get_collector_logger().info(
        "collection_started",
        root=root,
        exclude_patterns=exclude_count,
        exclude_import_patterns=exclude_import_count,
    )


def log_file_skipped(file_path: str, reason: str) -> None:
    """Log a file that contributed no imports."""
    get_collector_logger().debug("file_skipped", file_path=file_path, reason=reason)


def log_collection_complete(
    files_scanned: int, files_skipped: int, files_excluded: int, dependency_count: int
) -> None:
    """Log walk completion."""
    get_collector_logger().info(
        "collection_completed",
        files_scanned=files_scanned,
        files_skipped=files_skipped,
        files_excluded=files_excluded,
        dependency_count=dependency_count,
    )


def log_manifest_loaded(
    manifest_path: str, constraint_count: int, override_count: int
) -> None:
    """Log a successfully decoded manifest."""
    get_manifest_logger().info(
        "manifest_loaded",
        manifest_path=manifest_path,
        constraints=constraint_count,
        overrides=override_count,
    )


def log_dependency_declared(
    name: str, kind: str, pin: str, source: Optional[str] = None
) -> None:
    """Log one manifest record. ``source`` must already be redacted."""
    get_manifest_logger().debug(
        "dependency_declared", dependency=name, kind=kind, pin=pin, source=source
    )


def log_reconcile_complete(
    collected_count: int, declared_count: int, missing_count: int
) -> None:
    """Log the reconciliation outcome."""
    logger = get_reconciler_logger()
    log_data = {
        "collected": collected_count,
        "declared": declared_count,
        "missing": missing_count,
    }
    if missing_count:
        logger.info("undeclared_dependencies_found", **log_data)
    else:
        logger.info("reconcile_completed", **log_data)


def set_run_context(run_id: Optional[str] = None, root: Optional[str] = None) -> None:
    """Set run context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_run_context(run_id, root)


def clear_run_context() -> None:
    """Clear run context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.clear_run_context()


def configure_logging(log_level: str = "CRITICAL") -> None:
    """Configure logging for the application."""
    level = getattr(logging, str(log_level).upper(), logging.CRITICAL)

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)

    logging.getLogger("dep_reconciler").setLevel(level)
