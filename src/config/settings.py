"""modboard settings, read from the environment and an optional ``.env`` file.

List-valued settings (``CASSANDRA_HOSTS``, ``CORS_ORIGINS``, ...) accept either
a JSON array or a comma separated string.
"""

from functools import lru_cache
from typing import Annotated, Literal

import orjson
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


CommaList = Annotated[list[str], NoDecode]

ConsistencyName = Literal["ONE", "LOCAL_ONE", "LOCAL_QUORUM", "QUORUM", "ALL"]


class Settings(BaseSettings):
    """Runtime configuration for the moderation API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="modboard", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )

    # HTTP server (used by the ``modboard`` console script)
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=5000, description="Bind port")
    api_workers: int = Field(default=1, ge=1, description="Uvicorn worker processes")
    api_reload: bool = Field(default=False, description="Reload on code changes")

    # Cassandra: comments and comment_reports tables
    cassandra_hosts: CommaList = Field(
        default=["localhost"], description="Contact points"
    )
    cassandra_port: int = Field(default=9042, description="Native protocol port")
    cassandra_keyspace: str = Field(
        default="modboard",
        pattern=r"^[a-zA-Z_][a-zA-Z0-9_]{0,47}$",
        description="Keyspace holding the moderation tables",
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_local_dc: str | None = Field(
        default=None,
        description="Local datacenter; enables NetworkTopologyStrategy replication",
    )
    cassandra_replication_factor: int = Field(
        default=1, ge=1, description="Replicas per datacenter for a new keyspace"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Seconds to wait for the cluster on startup"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Default per-statement timeout in seconds"
    )

    # Redis: aggregated view cache and report rate limiting
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    redis_max_connections: int = Field(default=10, description="Pool size")
    redis_socket_timeout: float = Field(default=2.0, description="Socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=2.0, description="Connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Seconds between connection health checks"
    )

    # Moderation
    moderation_atomic_delete: bool = Field(
        default=True,
        description="Delete a comment and its reports in one LOGGED batch",
    )
    moderation_cache_enabled: bool = Field(
        default=True, description="Cache the aggregated view in Redis"
    )
    moderation_cache_ttl_seconds: int = Field(
        default=30,
        ge=1,
        description="Upper bound on staleness after writes by other processes",
    )
    moderation_read_consistency: ConsistencyName = Field(
        default="LOCAL_QUORUM",
        description="Consistency level for moderation reads and writes",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum level for console and app.log"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Console renderer"
    )
    log_include_caller_info: bool = Field(
        default=False, description="Add filename, line and function to events"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Rotate log files at this size"
    )
    log_file_backup_count: int = Field(
        default=5, description="Rotated log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start and finish"
    )
    log_exclude_paths: CommaList = Field(
        default=["/health"], description="Path prefixes excluded from request logs"
    )

    # CORS (the dashboard is served from another origin)
    cors_origins: CommaList = Field(default=["*"], description="Allowed origins")
    cors_allow_credentials: bool = Field(default=False, description="Allow credentials")
    cors_allow_methods: CommaList = Field(
        default=["GET", "POST", "PATCH", "DELETE"], description="Allowed methods"
    )
    cors_allow_headers: CommaList = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="Preflight cache seconds")

    @field_validator(
        "cassandra_hosts",
        "log_exclude_paths",
        "cors_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_comma_list(cls, value: object) -> object:
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return orjson.loads(text)
            return [part.strip() for part in text.split(",") if part.strip()]
        return value

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
