"""Configuration for accessroles.

Pydantic-validated settings shared by the engine, gateway, stores and
transport adapter. ``load_config_from_env()`` is the only place that reads
``os.environ``; everything else receives an ``AccessRolesConfig``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackend(str, Enum):
    """Supported ACL store backends.

    - MEMORY: process-local store (tests, embedded use)
    - REDIS: shared Redis store
    """

    MEMORY = "memory"
    REDIS = "redis"


class AccessRolesConfig(BaseModel):
    """Settings for an access-roles deployment.

    Environment variables:
        LOG_LEVEL                        — logging level
        LOG_JSON                         — JSON log format (true/false)
        SERVICE_NAME                     — service name for log identification
        ACCESSROLES_STORE                — memory | redis
        REDIS_URL                        — Redis connection URL (redis backend)
        ACCESSROLES_REDIS_PREFIX         — key prefix for ACL records
        ACCESSROLES_EVERYONE             — wildcard principal name
        ACCESSROLES_SUBPATH              — ACL sub-resource name
        ACCESSROLES_IDEMPOTENT_DELETE    — deleting a missing ACL succeeds
        ACCESSROLES_ROLE_MATRIX_PATH     — JSON role matrix file
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the service",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for log identification",
    )

    # Store
    store_backend: StoreBackend = Field(
        default=StoreBackend.MEMORY,
        description="ACL store backend: memory or redis",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (e.g., redis://localhost:6379/0)",
    )
    redis_prefix: str = Field(
        default="accessroles:acl",
        description="Key prefix for ACL records in Redis",
    )

    # Access roles
    everyone_principal: str = Field(
        default="EVERYONE",
        description="Wildcard principal implicitly held by every caller",
    )
    acl_subpath: str = Field(
        default="fcr:accessroles",
        description="Sub-resource name under which a node's ACL is addressed",
    )
    idempotent_delete: bool = Field(
        default=False,
        description="Deleting a missing ACL succeeds instead of reporting not found",
    )
    role_matrix_path: Optional[str] = Field(
        default=None,
        description="JSON file mapping role name to list of actions",
    )
    role_matrix: Optional[dict[str, list[str]]] = Field(
        default=None,
        description="Inline role matrix; overrides role_matrix_path",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("everyone_principal", "acl_subpath")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Must not be empty or whitespace")
        return v.strip()

    @model_validator(mode="after")
    def validate_store(self) -> AccessRolesConfig:
        if self.store_backend == StoreBackend.REDIS and not self.redis_url:
            raise ValueError("redis_url is required for the redis store backend")
        return self

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def load_config_from_env() -> AccessRolesConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Returns:
        AccessRolesConfig instance with values from environment or defaults.
    """
    import os

    _TRUTHY = ("true", "1", "yes", "on")

    return AccessRolesConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
        service_name=os.getenv("SERVICE_NAME"),
        store_backend=os.getenv("ACCESSROLES_STORE", "memory").lower(),
        redis_url=os.getenv("REDIS_URL"),
        redis_prefix=os.getenv("ACCESSROLES_REDIS_PREFIX", "accessroles:acl"),
        everyone_principal=os.getenv("ACCESSROLES_EVERYONE", "EVERYONE"),
        acl_subpath=os.getenv("ACCESSROLES_SUBPATH", "fcr:accessroles"),
        idempotent_delete=os.getenv("ACCESSROLES_IDEMPOTENT_DELETE", "false").lower() in _TRUTHY,
        role_matrix_path=os.getenv("ACCESSROLES_ROLE_MATRIX_PATH") or None,
    )


__all__ = [
    "AccessRolesConfig",
    "LogLevel",
    "StoreBackend",
    "load_config_from_env",
]
