"""
Configuration management for tablo2plex.

Handles loading, validation, and access to application configuration.
Values come from (lowest to highest priority) model defaults, config.yaml,
environment variables, and command line overrides.
"""

import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from tablo2plex.utils.paths import get_local_ipv4_address

# Global configuration instance
_config: Optional["Tablo2PlexConfig"] = None

DEFAULT_LINEUP_INTERVAL_DAYS = 30
DEFAULT_GUIDE_DAYS = 2
MAX_GUIDE_DAYS = 7


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8181
    base_url: Optional[str] = None  # Defaults to http://<local ip>:<port>
    uvicorn_log_level: str = "warning"

    @property
    def resolved_base_url(self) -> str:
        """Base URL advertised to HDHomeRun clients."""
        if self.base_url:
            return self.base_url.rstrip("/")
        return f"http://{get_local_ipv4_address()}:{self.port}"


class DeviceConfig(BaseModel):
    """HDHomeRun emulation identity."""
    friendly_name: str = "Tablo 4th Gen Proxy"
    device_id: str = "12345678"
    device_auth: str = "tabloauth123"
    manufacturer: str = "tablo2plex"
    model_number: str = "HDHR3-US"
    firmware_name: str = "hdhomerun3_atsc"
    firmware_version: str = "20240101"


class TabloConfig(BaseModel):
    """Upstream Tablo account and device settings."""
    username: Optional[str] = None
    password: Optional[str] = None
    device_server_id: Optional[str] = None  # Which device to use when the account has several
    cloud_host: str = "lighthousetv.ewscloud.com"
    user_agent: str = "Tablo-FAST/1.7.0 (Mobile; iPhone; iOS 16.6)"
    device_user_agent: str = "Tablo-FAST/1.7.0 (Mobile; iPhone; iOS 18.4)"
    hash_key: str = "6l8jU5N43cEilqItmT3U2M2PFM3qPziilXqau9ys"
    device_key: str = "ljpg6ZkwShVv8aI12E2LP55Ep8vq1uYDPvX0DdTB"
    request_timeout: float = 30.0

    @property
    def auto_profile(self) -> bool:
        """Pick the first profile without asking when a username is configured."""
        return self.username is not None


class LineupConfig(BaseModel):
    """Channel lineup refresh settings."""
    update_interval_days: float = DEFAULT_LINEUP_INTERVAL_DAYS

    @field_validator("update_interval_days", mode="before")
    @classmethod
    def _interval_days(cls, value: Any) -> float:
        try:
            days = float(value)
        except (TypeError, ValueError):
            return DEFAULT_LINEUP_INTERVAL_DAYS
        return days if days > 0 else DEFAULT_LINEUP_INTERVAL_DAYS

    @property
    def interval_ms(self) -> int:
        return int(self.update_interval_days * 24 * 60 * 60 * 1000)


class GuideConfig(BaseModel):
    """XMLTV guide generation settings."""
    enabled: bool = False
    days: int = DEFAULT_GUIDE_DAYS
    include_pseudotv: bool = False

    @field_validator("days", mode="before")
    @classmethod
    def _guide_days(cls, value: Any) -> int:
        try:
            days = int(value)
        except (TypeError, ValueError):
            return DEFAULT_GUIDE_DAYS
        return days if 0 < days <= MAX_GUIDE_DAYS else DEFAULT_GUIDE_DAYS


class FFmpegConfig(BaseModel):
    """FFmpeg configuration."""
    path: str = "ffmpeg"
    log_level: str = "repeat+level+panic"
    read_size: int = 65536  # 64KB


class StorageConfig(BaseModel):
    """Where credentials, lineup, schedule and guide files live."""
    output_dir: Optional[str] = None

    @property
    def data_dir(self) -> Path:
        if self.output_dir:
            return Path(self.output_dir)
        if getattr(sys, "frozen", False):
            return Path(sys.executable).parent
        return Path.cwd()

    @property
    def credentials_file(self) -> Path:
        return self.data_dir / "creds.bin"

    @property
    def lineup_file(self) -> Path:
        return self.data_dir / "lineup.json"

    @property
    def lineup_schedule_file(self) -> Path:
        return self.data_dir / "schedule_lineup.json"

    @property
    def guide_schedule_file(self) -> Path:
        return self.data_dir / "schedule_guide.json"

    @property
    def guide_file(self) -> Path:
        return self.data_dir / "guide.xml"

    @property
    def guide_cache_dir(self) -> Path:
        return self.data_dir / "tempGuide"

    @property
    def pseudotv_guide_file(self) -> Path:
        return self.data_dir / ".pseudotv" / "xmltv.xml"


class SecretsConfig(BaseModel):
    """Credential file obfuscation settings."""
    key_constant: Optional[str] = None  # Hex string, defaults to the built-in constant


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "error"
    save: bool = False
    file: str = "tablo2plex.log"
    max_size: str = "10MB"
    backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("level", mode="before")
    @classmethod
    def _known_level(cls, value: Any) -> str:
        level = str(value).lower() if value is not None else ""
        return level if level in ("info", "warn", "error", "debug") else "error"

    @property
    def python_level(self) -> str:
        return {"warn": "WARNING"}.get(self.level, self.level.upper())


class Tablo2PlexConfig(BaseModel):
    """Main tablo2plex configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    tablo: TabloConfig = Field(default_factory=TabloConfig)
    lineup: LineupConfig = Field(default_factory=LineupConfig)
    guide: GuideConfig = Field(default_factory=GuideConfig)
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> Tablo2PlexConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. Defaults to config.yaml in the
            working directory or in OUT_DIR.
        overrides: Nested values applied last (command line flags).

    Returns:
        Loaded and validated configuration.
    """
    global _config

    if config_path is None:
        possible_paths = [Path("config.yaml")]
        if os.environ.get("OUT_DIR"):
            possible_paths.append(Path(os.environ["OUT_DIR"]) / "config.yaml")
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data: dict[str, Any] = {}

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    _deep_merge(config_data, _get_env_overrides())
    if overrides:
        _deep_merge(config_data, overrides)

    _config = Tablo2PlexConfig(**config_data)
    return _config


def get_config() -> Tablo2PlexConfig:
    """
    Get the current configuration.

    Returns:
        Current configuration (loads default if not yet loaded).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Tablo2PlexConfig:
    """Reload configuration from disk."""
    global _config
    _config = None
    return load_config()


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _parse_str(value: str) -> str:
    return value


# Environment variable -> (config path, parser). Names match the Docker image.
_ENV_MAP: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "NAME": (("device", "friendly_name"), _parse_str),
    "DEVICE_ID": (("device", "device_id"), _parse_str),
    "PORT": (("server", "port"), _parse_str),
    "BASE_URL": (("server", "base_url"), _parse_str),
    "LINEUP_UPDATE_INTERVAL": (("lineup", "update_interval_days"), _parse_str),
    "CREATE_XML": (("guide", "enabled"), _parse_bool),
    "GUIDE_DAYS": (("guide", "days"), _parse_str),
    "INCLUDE_PSEUDOTV_GUIDE": (("guide", "include_pseudotv"), _parse_bool),
    "LOG_LEVEL": (("logging", "level"), _parse_str),
    "SAVE_LOG": (("logging", "save"), _parse_bool),
    "OUT_DIR": (("storage", "output_dir"), _parse_str),
    "USER_NAME": (("tablo", "username"), _parse_str),
    "USER_PASS": (("tablo", "password"), _parse_str),
    "TABLO_DEVICE": (("tablo", "device_server_id"), _parse_str),
    "HashKey": (("tablo", "hash_key"), _parse_str),
    "DeviceKey": (("tablo", "device_key"), _parse_str),
    "RSA": (("secrets", "key_constant"), _parse_str),
    "FFMPEG_PATH": (("ffmpeg", "path"), _parse_str),
}


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    for env_var, (path, parser) in _ENV_MAP.items():
        value = os.environ.get(env_var)
        # Empty values behave as unset (PORT="" in the Docker image)
        if value:
            _set_nested(overrides, path, parser(value))

    return overrides


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

