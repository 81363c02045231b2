"""
Error handling system for dep-reconciler.

Provides the exception hierarchy raised by the reconciliation engine and
a small error handler that records categorized error contexts on the
``dep_reconciler`` logger.
"""

import logging
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class DepReconcilerError(Exception):
    """Base class for every fatal error raised by dep-reconciler."""


class ConfigError(DepReconcilerError):
    """Invalid configuration, such as a malformed exclude pattern."""


class CollectionError(DepReconcilerError):
    """Filesystem failure while walking the source tree."""


class ImportFormatError(DepReconcilerError):
    """An import literal cannot be unquoted or has too few path segments."""


class ManifestIOError(DepReconcilerError):
    """The manifest file is missing or unreadable."""


class ManifestFormatError(DepReconcilerError):
    """The manifest file is not a valid Gopkg.toml document."""


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    PARSING = "PARSING"
    IMPORT_FORMAT = "IMPORT_FORMAT"
    MANIFEST = "MANIFEST"
    CONFIGURATION = "CONFIGURATION"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    suggestions: List[str] = field(default_factory=list)


# user:password@ in https://, ssh:// and git:// URLs, as found in
# Gopkg.toml ``source`` fields pointing at private mirrors
_URL_CREDENTIALS = re.compile(r"([a-z][a-z0-9+.-]*://)[^@\s/]+@", re.IGNORECASE)


def redact_credentials(text: str) -> str:
    """Replace the userinfo part of any URL in ``text``."""
    return _URL_CREDENTIALS.sub(r"\1[REDACTED]@", text)


class SecureLogger:
    """Logger that strips URL credentials from messages before emitting them."""

    def __init__(self, name: str, level: int = logging.CRITICAL):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def log_error_context(self, context: ErrorContext):
        """
        Log error context with appropriate level.

        Args:
            context: Error context to log
        """
        log_data = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": {
                key: redact_credentials(value) if isinstance(value, str) else value
                for key, value in context.details.items()
            },
        }
        if context.exception:
            log_data["exception"] = type(context.exception).__name__
        if context.suggestions:
            log_data["suggestions"] = context.suggestions

        message = redact_credentials(context.message)
        self.logger.log(getattr(logging, context.level.value), f"{message} | {log_data}")


class ErrorHandler:
    """Records categorized errors raised while checking a tree."""

    def __init__(
        self, logger_name: str = "dep_reconciler", log_level: int = logging.CRITICAL
    ):
        self.logger = SecureLogger(logger_name, log_level)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Build an error context and log it.

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            suggestions=suggestions or [],
        )
        self.logger.log_error_context(context)
        return context

    def debug(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle debug level event."""
        return self.handle_error(
            ErrorLevel.DEBUG, category, message, module, function, **kwargs
        )

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.CRITICAL, logger_name: str = "dep_reconciler"
) -> ErrorHandler:
    """Replace the global error handler."""
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level)
    return _global_error_handler


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
):
    """
    Record a source file that could not be parsed.

    Parse failures are expected for non-Go files, so they are reported at
    DEBUG level and never interrupt a walk.
    """
    details = {}
    if file_path is not None:
        details["file_path"] = file_path

    get_error_handler().debug(
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details=details,
        exception=exception,
    )


def log_import_format_error(
    message: str,
    module: str,
    function: str,
    import_path: Optional[str] = None,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging malformed import literals.

    Args:
        message: Error message
        module: Module name
        function: Function name
        import_path: The offending import literal
        file_path: File containing the import
        exception: Optional exception
    """
    details = {}
    if import_path is not None:
        details["import_path"] = import_path
    if file_path is not None:
        details["file_path"] = Path(file_path).as_posix()

    suggestions = [
        "Check the import literal is a valid Go string",
        "Add the host to host_segments if it serves modules at a shorter path",
        "Exclude the import with --exclude-import",
    ]

    get_error_handler().error(
        ErrorCategory.IMPORT_FORMAT,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=suggestions,
    )
