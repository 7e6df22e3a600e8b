"""
Configuration management for StreamKeeper.

Handles loading, validation, and access to application configuration.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

# Global configuration instance
_config: Optional["StreamKeeperConfig"] = None


class PlaybackConfig(BaseModel):
    """Session and retry configuration."""
    max_retries: int = Field(default=5, ge=0)
    initial_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=30000, ge=0)
    restart_on_end: bool = True  # Live streams should never end; reload the same target


class OverlayConfig(BaseModel):
    """Overlay and channel banner configuration."""
    banner_duration_ms: int = Field(default=3000, ge=0)
    banner_info: str = "Now Playing: Live Stream"


class SecurityConfig(BaseModel):
    """Stream target allow-listing."""
    allowed_schemes: list[str] = Field(default_factory=lambda: ["https"])
    allowed_domains: list[str] = Field(
        default_factory=lambda: ["wowza.com", "nmtv.tv"]
    )


class ChannelConfig(BaseModel):
    """A single channel entry."""
    id: str
    name: str
    stream_url: str
    is_default: bool = False


def _default_channels() -> list[ChannelConfig]:
    return [
        ChannelConfig(
            id="nmtv_uk",
            name="NMTV UK",
            stream_url="https://cdn3.wowza.com/5/L1Uzd2FrbVlLRG1W/live/smil:nmtvuk.smil/playlist.m3u8",
            is_default=True,
        ),
        ChannelConfig(
            id="nmtv_classics",
            name="NMTV Classics",
            stream_url="https://cdn3.wowza.com/5/NVF5TVdNQmR5OHRI/nwmc/nwmc_hd/playlist.m3u8",
        ),
    ]


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: str = "logs/streamkeeper.log"
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_to_console: bool = True
    log_to_file: bool = True


class StreamKeeperConfig(BaseModel):
    """Main StreamKeeper configuration."""
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    channels: list[ChannelConfig] = Field(default_factory=_default_channels)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> StreamKeeperConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. Defaults to config.yaml in project root.

    Returns:
        Loaded and validated configuration.
    """
    global _config

    if config_path is None:
        # Look for config.yaml in current directory or project root
        possible_paths = [
            Path("config.yaml"),
            Path(__file__).parent.parent / "config.yaml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data: dict[str, Any] = {}

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    env_overrides = _get_env_overrides()
    _deep_merge(config_data, env_overrides)

    _config = StreamKeeperConfig(**config_data)
    return _config


def get_config() -> StreamKeeperConfig:
    """
    Get the current configuration.

    Returns:
        Current configuration (loads default if not yet loaded).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> StreamKeeperConfig:
    """
    Reload configuration from disk.

    Returns:
        Freshly loaded configuration.
    """
    global _config
    _config = None
    return load_config()


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    # Map of environment variables to config paths
    env_map = {
        "STREAMKEEPER_MAX_RETRIES": ("playback", "max_retries"),
        "STREAMKEEPER_INITIAL_DELAY_MS": ("playback", "initial_delay_ms"),
        "STREAMKEEPER_MAX_DELAY_MS": ("playback", "max_delay_ms"),
        "STREAMKEEPER_RESTART_ON_END": ("playback", "restart_on_end"),
        "STREAMKEEPER_BANNER_DURATION_MS": ("overlay", "banner_duration_ms"),
        "STREAMKEEPER_LOG_LEVEL": ("logging", "level"),
        "STREAMKEEPER_LOG_FILE": ("logging", "file"),
    }

    for env_var, path in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested(overrides, path, _parse_env_value(value))

    return overrides


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type."""
    # Boolean
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    # Integer
    try:
        return int(value)
    except ValueError:
        pass

    # Float
    try:
        return float(value)
    except ValueError:
        pass

    return value


def _set_nested(d: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    """Set a nested dictionary value from a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Deep merge override into base dictionary."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
