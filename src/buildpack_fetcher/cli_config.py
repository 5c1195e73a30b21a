"""
Configuration management for buildpack-fetcher.

Settings come from defaults, an optional config file and ``BUILDPACK_FETCHER_*``
environment variables, in that order of precedence.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)


@dataclass
class NetworkConfig:
    """HTTP retrieval configuration."""

    user_agent: str = "buildpack-fetcher/1.0.0"
    # None blocks until the server answers or the connection drops
    timeout_seconds: Optional[float] = None
    follow_redirects: bool = True
    chunk_size: int = 64 * 1024


@dataclass
class CacheConfig:
    """Local artifact cache configuration."""

    dependencies_dir_name: str = "dependencies"


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "INFO"
    enable_sensitive_data_masking: bool = True


@dataclass
class FetcherConfig:
    """Main configuration containing all subsections."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_global_config: Optional[FetcherConfig] = None

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_config_values(config: FetcherConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    timeout = config.network.timeout_seconds
    if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
        errors.append("network.timeout_seconds must be positive or null")
    chunk_size = config.network.chunk_size
    if not isinstance(chunk_size, int) or chunk_size <= 0:
        errors.append("network.chunk_size must be positive")
    if not isinstance(config.network.user_agent, str) or not config.network.user_agent:
        errors.append("network.user_agent must not be empty")

    name = config.cache.dependencies_dir_name
    if (
        not isinstance(name, str)
        or not name
        or "/" in name
        or "\\" in name
        or name in (".", "..")
    ):
        errors.append("cache.dependencies_dir_name must be a plain directory name")

    if str(config.logging.log_level).upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"logging.log_level must be one of {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON or YAML file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                console.print(
                    f"⚠️  Unsupported config format: {config_path.suffix}", style="yellow"
                )
                return None
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    if not isinstance(data, dict):
        console.print(
            f"⚠️  Config file {config_path} must contain a mapping", style="yellow"
        )
        return None
    return data


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".buildpack-fetcher.json",
        Path.cwd() / ".buildpack-fetcher.yaml",
        Path.cwd() / ".buildpack-fetcher.yml",
        Path.home() / ".config" / "buildpack-fetcher" / "config.json",
        Path.home() / ".config" / "buildpack-fetcher" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: FetcherConfig) -> None:
    """Apply ``BUILDPACK_FETCHER_*`` environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, using default", style="yellow")
            return None

    def get_env_float(key: str) -> Optional[float]:
        try:
            return float(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid float value for {key}, using default", style="yellow")
            return None

    if user_agent := os.environ.get("BUILDPACK_FETCHER_USER_AGENT"):
        config.network.user_agent = user_agent
    if timeout := get_env_float("BUILDPACK_FETCHER_TIMEOUT"):
        config.network.timeout_seconds = timeout
    if chunk_size := get_env_int("BUILDPACK_FETCHER_CHUNK_SIZE"):
        config.network.chunk_size = chunk_size
    config.network.follow_redirects = get_env_bool(
        "BUILDPACK_FETCHER_FOLLOW_REDIRECTS", config.network.follow_redirects
    )

    if dir_name := os.environ.get("BUILDPACK_FETCHER_DEPENDENCIES_DIR"):
        config.cache.dependencies_dir_name = dir_name

    if log_level := os.environ.get("BUILDPACK_FETCHER_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    config.logging.enable_sensitive_data_masking = get_env_bool(
        "BUILDPACK_FETCHER_MASK_SENSITIVE", config.logging.enable_sensitive_data_masking
    )


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def config_from_dict(file_config: Optional[Dict[str, Any]]) -> FetcherConfig:
    """Build a configuration from file data alone, without validation."""
    config = FetcherConfig()

    if file_config:
        for section in ("network", "cache", "logging"):
            if isinstance(file_config.get(section), dict):
                apply_config_section(getattr(config, section), file_config[section], section)

    return config


def build_config(file_config: Optional[Dict[str, Any]] = None) -> FetcherConfig:
    """Build a configuration from file data plus environment overrides."""
    config = config_from_dict(file_config)
    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        config = _restore_defaults(config, validation_errors)

    return config


def _restore_defaults(config: FetcherConfig, errors: List[str]) -> FetcherConfig:
    defaults = FetcherConfig()
    for error in errors:
        section, _, rest = error.partition(".")
        key = rest.split(" ", 1)[0]
        setattr(getattr(config, section), key, getattr(getattr(defaults, section), key))
    return config


def load_config() -> FetcherConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    file_config = None
    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)

    _global_config = build_config(file_config)
    return _global_config


def get_config() -> FetcherConfig:
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
    """Generate a sample configuration file."""
    return json.dumps(FetcherConfig().to_dict(), indent=2)
