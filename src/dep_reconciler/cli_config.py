"""
Configuration management for dep-reconciler.

Settings come from an optional project or user config file (JSON or
YAML), then environment variables, then command-line flags.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

from .collector import HOST_SEGMENTS, HostRule
from .matcher import MatchMode

console = Console(stderr=True)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScanConfig:
    """Source tree walk and reporting configuration."""

    exclude: List[str] = field(default_factory=list)
    exclude_imports: List[str] = field(default_factory=list)
    match_mode: str = MatchMode.REGEX.value
    output_format: str = "console"
    quiet: bool = False
    verbose: bool = False


@dataclass
class SecurityConfig:
    """Limits applied while reading source files."""

    max_file_size_mb: int = 10

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class HostConfig:
    """Additions to the host segment table."""

    host_segments: Dict[str, int] = field(default_factory=dict)


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "CRITICAL"


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    hosts: HostConfig = field(default_factory=HostConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if str(config.scan.match_mode).lower() not in [m.value for m in MatchMode]:
        errors.append(
            f"scan.match_mode must be one of: {', '.join(m.value for m in MatchMode)}"
        )
    if str(config.scan.output_format).lower() not in ("console", "json"):
        errors.append("scan.output_format must be 'console' or 'json'")
    for key in ("exclude", "exclude_imports"):
        value = getattr(config.scan, key)
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            errors.append(f"scan.{key} must be a list of strings")

    max_size = config.security.max_file_size_mb
    if not isinstance(max_size, int) or isinstance(max_size, bool) or max_size <= 0:
        errors.append("security.max_file_size_mb must be a positive integer")

    if not isinstance(config.hosts.host_segments, dict):
        errors.append("hosts.host_segments must be a mapping of host to segment count")
    else:
        for host, count in config.hosts.host_segments.items():
            if not isinstance(count, int) or isinstance(count, bool) or count < 1:
                errors.append(f"hosts.host_segments[{host!r}] must be a positive integer")

    if str(config.logging.log_level).upper() not in LOG_LEVELS:
        errors.append(f"logging.log_level must be one of: {', '.join(LOG_LEVELS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    return data if isinstance(data, dict) else None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".dep-reconciler.json",
        Path.cwd() / ".dep-reconciler.yaml",
        Path.cwd() / ".dep-reconciler.yml",
        Path.home() / ".config" / "dep-reconciler" / "config.json",
        Path.home() / ".config" / "dep-reconciler" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load environment variable overrides."""

    def get_env_list(key: str) -> List[str]:
        value = os.environ.get(key, "")
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else default
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, using default", style="yellow")
            return default

    if excludes := get_env_list("DEP_RECONCILER_EXCLUDE"):
        config.scan.exclude = list(config.scan.exclude) + excludes
    if exclude_imports := get_env_list("DEP_RECONCILER_EXCLUDE_IMPORT"):
        config.scan.exclude_imports = list(config.scan.exclude_imports) + exclude_imports

    if match_mode := os.environ.get("DEP_RECONCILER_MATCH_MODE"):
        config.scan.match_mode = match_mode.lower()
    if max_file_size := get_env_int("DEP_RECONCILER_MAX_FILE_SIZE_MB"):
        config.security.max_file_size_mb = max_file_size
    if log_level := os.environ.get("DEP_RECONCILER_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            if isinstance(getattr(config, key), dict) and isinstance(value, dict):
                getattr(config, key).update(value)
            else:
                setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def apply_config_data(config: ComprehensiveConfig, file_config: Dict[str, Any]) -> None:
    """Apply every known section of a decoded config file."""
    for section in ("scan", "security", "hosts", "logging"):
        if isinstance(file_config.get(section), dict):
            apply_config_section(getattr(config, section), file_config[section], section)


def load_config() -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ComprehensiveConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            apply_config_data(config, file_config)

    load_environment_overrides(config)

    # Validated by the caller, which decides whether errors are fatal
    _global_config = config
    return config


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate sample configuration."""
    sample_config = {
        "scan": {
            "exclude": ["^vendor/"],
            "exclude_imports": [],
            "match_mode": "regex",
            "output_format": "console",
        },
        "security": {
            "max_file_size_mb": 10,
        },
        "hosts": {
            "host_segments": {"go.example.com": 2},
        },
        "logging": {
            "log_level": "CRITICAL",
        },
    }

    return json.dumps(sample_config, indent=2)


def effective_host_segments(config: ComprehensiveConfig) -> Dict[str, HostRule]:
    """Return the built-in host table merged with configured additions."""
    merged = dict(HOST_SEGMENTS)
    merged.update(config.hosts.host_segments)
    return merged
