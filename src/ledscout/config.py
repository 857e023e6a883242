"""Configuration management for ledscout."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class SortOrder(str, Enum):
    """How the final device list is ordered by IP address."""
    LEXICAL = "lexical" # Plain string comparison, "x.x.x.10" sorts before "x.x.x.2"
    NUMERIC = "numeric" # Octet-wise integer comparison


class ScannerConfig(BaseModel):
    """Configuration for the subnet sweep and the per-device probes."""

    max_concurrency: int = Field(default=10, ge=1, le=64, description="Maximum number of probes in flight at any time.")
    ping_timeout_seconds: float = Field(default=1.0, gt=0, le=10, description="Timeout for the ICMP reachability pre-check.")
    http_timeout_seconds: float = Field(default=3.0, gt=0, le=30, description="Timeout for each HTTP GET against a candidate.")

    wled_web_ui_fallback: bool = Field(default=True, description="Check the root page for the WLED web UI title when /win does not identify a WLED device.")
    wled_json_fallback: bool = Field(default=True, description="Try /json/info, then /json, when /win does not identify a WLED device.")
    pixelit_loose_match: bool = Field(default=False, description="Also accept PixelIt pages that merely mention 'pixelit'. Prone to false positives.")
    sort_order: SortOrder = Field(default=SortOrder.LEXICAL, description="Ordering applied to the final device list.")

    interface: str | None = Field(default=None, description="Only consider addresses bound to this interface (e.g. 'eth0').")
    subnet: str | None = Field(default=None, description="Explicit 3-octet subnet prefix to sweep (e.g. '192.168.1'). Skips interface detection but is still checked for privacy.")

    @field_validator("subnet")
    @classmethod
    def validate_subnet(cls, v: str | None) -> str | None:
        if v is None:
            return v
        parts = v.strip().split(".")
        if len(parts) != 3 or not all(p.isdigit() and 0 <= int(p) <= 255 for p in parts):
            raise ValueError(f"subnet must be a 3-octet prefix like '192.168.1', got {v!r}")
        return ".".join(str(int(p)) for p in parts)


class HttpClientConfig(BaseModel):
    """Configuration for the shared aiohttp session used by the probes."""
    connection_pool_total_limit: int = Field(default=20, ge=1, description="Total connection pool limit for the aiohttp session.")
    connection_pool_per_host_limit: int = Field(default=2, ge=1, description="Per-host connection pool limit for the aiohttp session.")
    user_agent: str | None = Field(default=None, description="User-Agent header sent with probes. Defaults to 'ledscout/<version>'.")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format ('json' or 'console')")
    file: Path | None = Field(default=None, description="Log file path")


class Config(BaseSettings):
    """Main configuration for ledscout. Loads from environment variables prefixed with LEDSCOUT_."""

    model_config = SettingsConfigDict(
        env_prefix='LEDSCOUT_',
        env_nested_delimiter='__', # e.g., LEDSCOUT_SCANNER__MAX_CONCURRENCY
        extra='ignore',
        env_file='.env',
        env_file_encoding='utf-8'
    )

    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, file_path: Path) -> "Config":
        """Create configuration strictly from a JSON file.

        Environment variables are not layered on top; use ``Config()`` for that.
        """
        try:
            with open(file_path) as f:
                config_data = json.load(f)
            return cls.model_validate(config_data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Failed to load configuration from {file_path}: {e}") from e
