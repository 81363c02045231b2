"""
Exclude pattern matching for file paths and import identifiers.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple

from .error_handling import ConfigError, ErrorCategory, get_error_handler


class MatchMode(Enum):
    """How an exclude pattern is compared against a candidate."""

    REGEX = "regex"
    GLOB = "glob"
    PREFIX = "prefix"


DEFAULT_MATCH_MODE = MatchMode.REGEX


@dataclass(frozen=True)
class ExcludePattern:
    """A validated exclude pattern."""

    pattern: str
    mode: MatchMode = DEFAULT_MATCH_MODE
    _regex: Optional[re.Pattern] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.mode == MatchMode.REGEX and self._regex is None:
            try:
                compiled = re.compile(self.pattern)
            except re.error as e:
                get_error_handler().error(
                    ErrorCategory.CONFIGURATION,
                    f"Invalid exclude pattern: {self.pattern!r}",
                    "matcher",
                    "ExcludePattern",
                    exception=e,
                    suggestions=["Escape regex metacharacters such as '.' and '('"],
                )
                raise ConfigError(f"invalid exclude pattern {self.pattern!r}: {e}") from e
            object.__setattr__(self, "_regex", compiled)

    def matches(self, candidate: str) -> bool:
        """Check if this pattern matches the given candidate."""
        if self.mode == MatchMode.REGEX:
            return self._regex.search(candidate) is not None
        elif self.mode == MatchMode.GLOB:
            return _glob_matches(self.pattern, candidate)
        elif self.mode == MatchMode.PREFIX:
            return candidate.startswith(self.pattern)

        return False


def _glob_matches(pattern: str, candidate: str) -> bool:
    # "vendor" and "vendor/*" also cover everything below vendor/
    parts = candidate.split("/")
    for i in range(len(parts), 0, -1):
        if fnmatch.fnmatchcase("/".join(parts[:i]), pattern):
            return True
    return False


def parse_match_mode(value) -> MatchMode:
    """Convert a config or CLI value to a MatchMode."""
    if isinstance(value, MatchMode):
        return value
    try:
        return MatchMode(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in MatchMode)
        raise ConfigError(f"unknown match mode {value!r} (expected one of: {choices})")


def compile_patterns(
    patterns: Iterable[str], mode: MatchMode = DEFAULT_MATCH_MODE
) -> Tuple[ExcludePattern, ...]:
    """
    Validate user supplied patterns once, at startup.

    Duplicates collapse, so repeating a pattern never changes a result.

    Raises:
        ConfigError: If a regex pattern does not compile
    """
    compiled = []
    seen = set()
    for pattern in patterns:
        if pattern in seen:
            continue
        seen.add(pattern)
        compiled.append(ExcludePattern(pattern, mode))
    return tuple(compiled)


def matches(patterns: Iterable[ExcludePattern], candidate: str) -> bool:
    """Return True if ``candidate`` matches any of ``patterns``."""
    return any(p.matches(candidate) for p in patterns)
