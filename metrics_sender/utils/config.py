"""
Configuration management for metrics-sender.

Uses pydantic-settings to load configuration from environment variables
and .env files. A YAML file can be layered on top with ``--config``.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from domains.spool_ingest.inventory import SpoolOrder

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Spool Configuration
    source_folder: Path = Path("/var/spool/metrics-sender")
    process_interval_seconds: float = Field(default=5.0, gt=0)  # tick
    reread_folder_seconds: float = Field(default=180.0, gt=0)  # re-scan timeout
    spool_order: SpoolOrder = SpoolOrder.OLDEST_FIRST
    max_line_length: int = Field(default=512 * 1024, gt=0)
    watch_events: bool = False

    # Worker Configuration
    max_concurrent_workers: int = Field(default=4, ge=1)

    # Logging Configuration
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_serialize: bool = False

    # InfluxDB Configuration
    influx_url: str = "http://localhost:8086"
    influx_database: str = "metrics"
    influx_retention_policy: Optional[str] = None
    influx_gzip: bool = False
    influx_username: Optional[str] = None
    influx_password: Optional[str] = None
    influx_token: Optional[str] = None
    influx_org: str = "-"
    influx_verify_ssl: bool = True
    influx_timeout_ms: int = 10_000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_influx_bucket(self) -> str:
        """Bucket name in the ``database/retention_policy`` form of the 1.x API."""
        if self.influx_retention_policy:
            return f"{self.influx_database}/{self.influx_retention_policy}"
        return self.influx_database

    def get_influx_token(self) -> str:
        """Token for the client; 1.x credentials are sent as ``user:password``."""
        if self.influx_token:
            return self.influx_token
        if self.influx_username:
            return f"{self.influx_username}:{self.influx_password or ''}"
        return ""


def config_key(key: str) -> str:
    """Map a config file key to its settings field (``sourceFolder`` -> ``source_folder``)."""
    return _CAMEL_BOUNDARY.sub("_", str(key)).lower()


def read_config_file(config_file: Path) -> Dict[str, Any]:
    """
    Read a YAML config file into settings keyword arguments.

    Keys may be snake_case or camelCase (``rereadFolderSeconds``). A nested
    ``influx:`` mapping is flattened into ``influx_*`` keys.

    Raises:
        ValueError: On a document that is not a mapping or on unknown keys
    """
    with open(config_file, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping")

    influx = raw.pop("influx", None) or {}
    if not isinstance(influx, dict):
        raise ValueError(f"Config file {config_file}: influx must be a mapping")

    data: Dict[str, Any] = {config_key(key): value for key, value in raw.items()}
    for key, value in influx.items():
        data[f"influx_{config_key(key)}"] = value

    unknown = sorted(set(data) - set(Settings.model_fields))
    if unknown:
        raise ValueError(f"Config file {config_file} has unknown keys: {', '.join(unknown)}")

    return data


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Build settings; values from ``config_file`` win over the environment."""
    if config_file is None:
        return Settings()
    return Settings(**read_config_file(config_file))


@lru_cache()
def get_settings(config_file: Optional[Path] = None) -> Settings:
    """Get cached settings instance."""
    return load_settings(config_file)
