# In src/dep_reconciler/dependency.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DeclaredDependency:
    """A dependency record from a [[constraint]] or [[override]] table."""

    name: str
    kind: str
    source_file: str
    version: Optional[str] = None
    branch: Optional[str] = None
    revision: Optional[str] = None
    source: Optional[str] = None

    @property
    def pin(self) -> str:
        """Human readable pin, preferring version over branch over revision."""
        if self.version:
            return self.version
        if self.branch:
            return f"branch:{self.branch}"
        if self.revision:
            return f"revision:{self.revision}"
        return "any"
