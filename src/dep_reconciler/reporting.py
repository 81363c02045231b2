"""
Reporting and output formatting for reconciliation results.

Console reports go to stderr so that a passing check prints nothing on
stdout; JSON reports go to stdout for automation.
"""

import json
from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from .reconciler import ReconciliationResult

MISSING_HEADER = "Missing import paths:"


class ReconciliationReporter:
    """Formats and displays reconciliation results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True, highlight=False, soft_wrap=True)

    def print_result(
        self, result: ReconciliationResult, verbose: bool = False, quiet: bool = False
    ) -> None:
        """
        Print the outcome of a check.

        A passing check prints nothing unless ``verbose`` is set or a file
        was too large to check. A failing check lists every missing
        dependency key, one per line, sorted.
        """
        if verbose:
            self._print_summary(result)

        if result.oversized and not quiet:
            self.console.print(
                f"⚠️  Not checked, larger than security.max_file_size_mb: "
                f"{', '.join(result.oversized)}",
                style="yellow",
                markup=False,
            )

        if result.missing:
            self.console.print(MISSING_HEADER, markup=False)
            for key in result.missing:
                self.console.print(key, markup=False)

    def _print_summary(self, result: ReconciliationResult) -> None:
        table = Table(title="📊 Dependency Check", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Item", style="bold")
        table.add_column("Count", justify="right")

        table.add_row("Go files scanned", str(result.files_scanned))
        table.add_row("Files skipped (not Go)", str(result.files_skipped))
        table.add_row("Paths excluded", str(result.files_excluded))
        table.add_row("Imported dependencies", str(len(result.collected)))
        table.add_row("Declared dependencies", str(len(result.declared)))
        if result.missing:
            table.add_row("Missing", f"[bold red]{len(result.missing)}[/bold red]")
        else:
            table.add_row("Missing", "[green]0[/green]")

        self.console.print(table)
        if result.unused:
            self.console.print(
                f"ℹ️  Declared but not imported: {', '.join(result.unused)}",
                style="dim",
                markup=False,
            )

    def print_error(self, message: str) -> None:
        """Print a fatal error."""
        self.console.print(f"❌ Error: {message}", style="red", markup=False)


def result_to_dict(result: ReconciliationResult) -> Dict[str, Any]:
    """Convert a result to a JSON-serializable dictionary."""
    return {
        "ok": result.ok,
        "missing": list(result.missing),
        "collected": sorted(result.collected),
        "declared": sorted(result.declared),
        "unused": list(result.unused),
        "oversized": list(result.oversized),
        "summary": {
            "files_scanned": result.files_scanned,
            "files_skipped": result.files_skipped,
            "files_excluded": result.files_excluded,
            "duration_ms": result.duration_ms,
        },
    }


def output_json_result(result: ReconciliationResult) -> None:
    """Export a result as JSON on stdout."""
    print(json.dumps(result_to_dict(result), indent=2, ensure_ascii=False))
