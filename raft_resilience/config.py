"""
Configuration management for the resilience test client.

Uses pydantic-settings for type-safe environment variable handling.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Keys exercised by a run unless overridden.
DEFAULT_KEYS: tuple[str, ...] = tuple("abcdefghijklmnopqrstuvxyz")

MIN_LOG_BUFFER_SIZE = 1000


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Timing values mirror the cluster's expected recovery characteristics and
    should only be changed when the cluster under test behaves differently.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESILIENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Run
    duration_ms: int = Field(
        default=60000,
        description="Duration of a resilience run in milliseconds",
        ge=0,
    )
    keys: list[str] = Field(
        default_factory=lambda: list(DEFAULT_KEYS),
        description="Keys read and written during a run",
        min_length=1,
    )

    # Cluster addressing
    host_override: str | None = Field(
        default="127.0.0.1",
        description="Hostname used for every endpoint (None keeps the advertised host)",
    )
    port_offset: int = Field(
        default=1,
        description="Offset between a node's cluster port and its client port",
    )

    # Requests and retries
    request_timeout_s: float = Field(
        default=8.0,
        description="Timeout ceiling per HTTP request in seconds",
        gt=0,
        le=120,
    )
    selection_attempts: int = Field(
        default=100,
        description="Random draws before endpoint selection gives up",
        ge=1,
    )
    transport_retry_delay_ms: int = Field(
        default=100,
        description="Delay before retrying after a connection-level failure",
        ge=0,
    )
    refused_retry_delay_ms: int = Field(
        default=1000,
        description="Delay before retrying a node reporting ECONNREFUSED while down",
        ge=0,
    )
    second_chance_delay_ms: int = Field(
        default=200,
        description="Delay before re-reading a key that returned a stale value",
        ge=0,
    )
    warmup_settle_ms: int = Field(
        default=200,
        description="Pause between warm-up writes and steady-state operations",
        ge=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON formatted log lines",
    )
    log_buffer_size: int = Field(
        default=MIN_LOG_BUFFER_SIZE,
        alias="DEBUG_LOG_BUFFER",
        description="Number of records kept by the diagnostic log collector",
    )
    log_server_name: str | None = Field(
        default=None,
        alias="DEBUG_LOG_SERVER_NAME",
        description="Host of a remote log collector receiving client logs",
    )
    log_server_port: int | None = Field(
        default=None,
        alias="DEBUG_LOG_SERVER_PORT",
        description="UDP port of a remote log collector",
        ge=1,
        le=65535,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("log_buffer_size")
    @classmethod
    def clamp_log_buffer_size(cls, v: int) -> int:
        """Never keep fewer than the minimum number of log records."""
        return max(v, MIN_LOG_BUFFER_SIZE)

    @field_validator("keys")
    @classmethod
    def validate_keys(cls, v: list[str]) -> list[str]:
        """Keys are used as URL paths and must be unique and non-empty."""
        if any(not key or "/" in key for key in v):
            raise ValueError("Keys must be non-empty and must not contain '/'")
        if len(set(v)) != len(v):
            raise ValueError("Keys must be unique")
        return v

    @property
    def has_log_server(self) -> bool:
        """Check if a remote log collector is configured."""
        return self.log_server_name is not None and self.log_server_port is not None

    def get_redacted_config(self) -> dict[str, str | int | float | bool | None]:
        """
        Get configuration dict safe for logging and reports.
        """
        return {
            "duration_ms": self.duration_ms,
            "keys": len(self.keys),
            "host_override": self.host_override,
            "port_offset": self.port_offset,
            "request_timeout_s": self.request_timeout_s,
            "selection_attempts": self.selection_attempts,
            "log_level": self.log_level,
            "log_server": self.has_log_server,
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure single instance throughout a process.
    """
    return Settings()
