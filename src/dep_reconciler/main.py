import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .cli_config import (
    LOG_LEVELS,
    apply_config_data,
    ComprehensiveConfig,
    create_sample_config,
    effective_host_segments,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .error_handling import ConfigError, DepReconcilerError
from .manifest import MANIFEST_FILENAME
from .matcher import MatchMode, parse_match_mode
from .reconciler import CheckConfig
from .reconciler import check as run_check
from .reporting import ReconciliationReporter, output_json_result
from .structured_logging import configure_logging

__version__ = "1.0.0"

console = Console()


def build_check_config(
    config: ComprehensiveConfig,
    excludes: Tuple[str, ...] = (),
    exclude_imports: Tuple[str, ...] = (),
    match_mode: Optional[str] = None,
    root: str = ".",
) -> CheckConfig:
    """
    Resolve configured values and command-line flags into a CheckConfig.

    Pattern flags add to the configured patterns; scalar flags override
    configured values.

    Raises:
        ConfigError: If the configuration is invalid
    """
    errors = validate_config_values(config)
    if errors:
        raise ConfigError("invalid configuration: " + "; ".join(errors))

    return CheckConfig(
        root=root,
        exclude=tuple(config.scan.exclude) + tuple(excludes),
        exclude_imports=tuple(config.scan.exclude_imports) + tuple(exclude_imports),
        match_mode=parse_match_mode(match_mode or config.scan.match_mode),
        manifest_name=MANIFEST_FILENAME,
        host_segments=effective_host_segments(config),
        max_file_size=config.security.max_file_size_bytes,
    )


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🔍 dep-reconciler: undeclared Go dependency checker

    Fails when a Go import refers to a dependency that Gopkg.toml does
    not declare as a constraint or override.
    """
    if version:
        console.print(f"dep-reconciler version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.option(
    "--exclude",
    "excludes",
    multiple=True,
    metavar="PATTERN",
    help="Exclude a file/dir from being scanned (repeatable)",
)
@click.option(
    "--exclude-import",
    "exclude_imports",
    multiple=True,
    metavar="PATTERN",
    help="Exclude an import from being included in the missing imports (repeatable)",
)
@click.option(
    "--match-mode",
    type=click.Choice([m.value for m in MatchMode], case_sensitive=False),
    help="How exclude patterns are matched (default from config or regex)",
)
@click.option(
    "--output-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    help="Output format for results (default from config or console)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Print a summary of the check even when it passes",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Structured log level on stderr (default from config or CRITICAL, which is silent)",
)
def check(
    excludes: Tuple[str, ...],
    exclude_imports: Tuple[str, ...],
    match_mode: Optional[str],
    output_format: Optional[str],
    quiet: bool,
    verbose: bool,
    log_level: Optional[str],
) -> None:
    """
    Check that every Go import under the current directory is declared
    in ./Gopkg.toml.

    Examples:

      dep-reconciler check

      dep-reconciler check --exclude '^vendor/' --exclude '_test\\.go$'

      dep-reconciler check --exclude-import '^github\\.com/myorg/'

      dep-reconciler check --match-mode glob --exclude 'vendor'
    """
    reporter = ReconciliationReporter()

    try:
        config = load_config()
        configure_logging(log_level or config.logging.log_level)

        check_config = build_check_config(config, excludes, exclude_imports, match_mode)
        result = run_check(check_config)

    except KeyboardInterrupt:
        Console(stderr=True).print("\n⚠️  Check interrupted by user", style="yellow")
        sys.exit(130)
    except DepReconcilerError as e:
        reporter.print_error(str(e))
        sys.exit(1)

    final_output_format = (output_format or config.scan.output_format).lower()
    final_quiet = quiet or config.scan.quiet
    final_verbose = (verbose or config.scan.verbose) and not final_quiet

    if final_output_format == "json":
        output_json_result(result)
    else:
        reporter.print_result(result, verbose=final_verbose, quiet=final_quiet)

    if not result.ok:
        sys.exit(1)


@cli.command()
def info():
    """Show how imports are matched to Gopkg.toml and how to configure it."""
    info_text = f"""
[bold blue]📋 What is checked:[/bold blue]

Every file under the current directory is parsed as Go source. Imports
whose first path element contains a dot are third-party imports; each is
reduced to its repository path and must appear as a [green]name[/green] in a
[green]\\[\\[constraint]][/green] or [green]\\[\\[override]][/green] table of [green]{MANIFEST_FILENAME}[/green].

Files that do not parse as Go are skipped.

[bold blue]🎯 Exclude Pattern Modes:[/bold blue]

• [yellow]regex[/yellow] - Unanchored regular expression search (default)
• [yellow]glob[/yellow] - Shell-style pattern; matching directories are skipped whole
• [yellow]prefix[/yellow] - Literal prefix of the path or import

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]DEP_RECONCILER_EXCLUDE[/cyan] - Comma separated exclude patterns
• [cyan]DEP_RECONCILER_EXCLUDE_IMPORT[/cyan] - Comma separated import exclude patterns
• [cyan]DEP_RECONCILER_MATCH_MODE[/cyan] - regex, glob or prefix
• [cyan]DEP_RECONCILER_MAX_FILE_SIZE_MB[/cyan] - Skip larger files
• [cyan]DEP_RECONCILER_LOG_LEVEL[/cyan] - Structured log level

[bold blue]📄 Configuration Files:[/bold blue]

• [green].dep-reconciler.json[/green] / [green].dep-reconciler.yaml[/green] - Project-level config
• [green]~/.config/dep-reconciler/config.json[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  # Basic check
  dep-reconciler check

  # Skip vendored code and tests
  dep-reconciler check --exclude '^vendor/' --exclude '_test\\.go$'

  # JSON output for automation
  dep-reconciler check --output-format json
"""
    console.print(
        Panel(
            info_text,
            title="[bold]dep-reconciler Information[/bold]",
            border_style="blue",
        )
    )

    table = Table(title="Repository path segments by host")
    table.add_column("Host", style="cyan")
    table.add_column("Segments", justify="center")
    for host, count in sorted(effective_host_segments(get_config()).items()):
        table.add_row(host, str(count))
    table.add_row("(any other host)", "3")
    console.print(table)


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-reconciler.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        Console(stderr=True).print(f"❌ Failed to create config file: {e}", style="red")
        sys.exit(1)

    console.print(f"✅ Created configuration file at {config_path}", style="green")
    console.print("Edit this file to customize your settings", style="dim")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print("\n[bold cyan]📊 Scan Settings:[/bold cyan]")
    console.print(f"  Exclude: {current_config.scan.exclude or 'none'}", markup=False)
    console.print(
        f"  Exclude Imports: {current_config.scan.exclude_imports or 'none'}",
        markup=False,
    )
    console.print(f"  Match Mode: {current_config.scan.match_mode}")
    console.print(f"  Output Format: {current_config.scan.output_format}")

    console.print("\n[bold cyan]🔒 Limits:[/bold cyan]")
    console.print(f"  Max File Size: {current_config.security.max_file_size_mb} MB")

    console.print("\n[bold cyan]🌐 Host Segment Overrides:[/bold cyan]")
    if current_config.hosts.host_segments:
        for host, count in sorted(current_config.hosts.host_segments.items()):
            console.print(f"  {host}: {count}")
    else:
        console.print("  none")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    error_console = Console(stderr=True)
    config_data = load_config_file(Path(config_file))

    if config_data is None:
        error_console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    candidate = ComprehensiveConfig()
    apply_config_data(candidate, config_data)
    errors = validate_config_values(candidate)

    if errors:
        error_console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            error_console.print(f"  • {error}", style="red", markup=False)
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
