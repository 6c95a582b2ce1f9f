"""
Pydantic-based configuration models for RideMyLay realtime.

Each section reads its own environment prefix; AppConfig aggregates them
and also reads a local .env file.
"""

import json
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import get_logger
from ..structured_logging.logging_utilities import VALID_ENVIRONMENTS, detect_environment

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a value from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list | tuple):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=5000, description="Server port")
    cors_origins: list[str] | str = Field(
        default_factory=lambda: ["http://localhost:3000"], description="Allowed browser origins"
    )
    socketio_path: str = Field(default="socket.io", description="Socket.IO mount path")
    ping_interval: int = Field(default=25, description="Engine.IO ping interval in seconds")
    ping_timeout: int = Field(default=20, description="Engine.IO ping timeout in seconds")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Accept JSON lists and comma-separated strings."""
        return _parse_env_list(v)

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str = Field(default="sqlite+aiosqlite:///./data/ridemylay.db", description="Async SQLAlchemy URL")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are usable by the gateway."""
        if not v:
            raise ValueError("Database URL cannot be empty")
        if not (v.startswith("sqlite+aiosqlite") or v.startswith("postgresql+asyncpg")):
            logger.error("Database URL validation failed - unsupported driver", url_preview=v[:50])
            raise ValueError("Database URL must use sqlite+aiosqlite or postgresql+asyncpg")
        return v

    model_config = {"env_prefix": "DATABASE_", "case_sensitive": False, "extra": "ignore"}


class AuthConfig(BaseSettings):
    """Bearer token verification settings."""

    jwt_secret: str = Field(default="dev-secret-change-me", description="HMAC secret shared with the REST login")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_expire_minutes: int = Field(default=60 * 24 * 7, description="Lifetime of issued tokens")

    model_config = {"env_prefix": "AUTH_", "case_sensitive": False, "extra": "ignore"}


class ClientConfig(BaseSettings):
    """Client socket service tuning."""

    server_url: str = Field(default="http://localhost:5000", description="Socket server URL")
    socketio_path: str = Field(default="socket.io", description="Socket.IO path on the server")
    max_reconnect_attempts: int = Field(default=30, description="Automatic reconnects before giving up")
    reconnect_delay: float = Field(default=1.0, description="Fixed delay after a transport disconnect (s)")
    backoff_base: float = Field(default=1.0, description="First backoff delay after a connect error (s)")
    backoff_ceiling: float = Field(default=30.0, description="Upper bound on backoff delay (s)")
    connect_timeout: float = Field(default=20.0, description="Connect attempt timeout (s)")
    heartbeat_interval: float = Field(default=25.0, description="Interval between heartbeat emits (s)")
    heartbeat_timeout: float = Field(default=30.0, description="Silence after which a connection is stale (s)")
    dedup_window: float = Field(default=2.0, description="Per-entity notification throttle window (s)")
    processed_cache_size: int = Field(default=100, description="Processed notification id cache capacity")
    entity_cache_size: int = Field(default=500, description="Per-entity throttle table capacity")
    status_grace_period: float = Field(default=3.0, description="Connecting time before the banner shows (s)")

    @model_validator(mode="after")
    def validate_timings(self) -> "ClientConfig":
        """Reject settings that make the retry or heartbeat loops meaningless."""
        if self.max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")
        if self.backoff_ceiling < self.backoff_base:
            raise ValueError("backoff_ceiling must be >= backoff_base")
        if self.heartbeat_timeout <= 0 or self.heartbeat_interval <= 0:
            raise ValueError("heartbeat interval and timeout must be positive")
        return self

    model_config = {"env_prefix": "CLIENT_", "case_sensitive": False, "extra": "ignore"}


class NotificationConfig(BaseSettings):
    """Durable notification settings."""

    retention_days: int = Field(default=30, description="Notifications older than this are purged")
    purge_interval_seconds: int = Field(default=3600, description="How often the purge task runs")
    page_size: int = Field(default=30, description="Notifications returned by the list endpoint")
    preview_length: int = Field(default=50, description="Message preview characters stored in metadata")

    model_config = {"env_prefix": "NOTIFICATIONS_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default_factory=detect_environment, description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="10MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        if v not in VALID_ENVIRONMENTS:
            raise ValueError(f"Environment must be one of {list(VALID_ENVIRONMENTS)}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    def to_legacy_dict(self) -> dict[str, Any]:
        """Convert to the dict shape setup_enhanced_logging expects."""
        return {
            "environment": self.environment,
            "level": self.level,
            "log_base": self.log_base,
            "rotation_max_size": self.rotation_max_size,
            "rotation_backup_count": self.rotation_backup_count,
            "disable_logging": self.disable_logging,
        }

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via get_config().
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict[str, Any]:
        """Flatten into the dict consumed by logging setup."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "database_url": self.database.url,
            "logging": self.logging.to_legacy_dict(),
        }
