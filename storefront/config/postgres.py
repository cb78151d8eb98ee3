"""
storefront.config.postgres – PostgreSQL DSN and connection-pool settings.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
         DB_POOL_RECYCLE, DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

from dataclasses import dataclass

from storefront.config._env import as_bool, as_int, pick

DEFAULT_DATABASE_URL = "postgresql://localhost/storefront"

_SCHEMES = ("postgresql://", "postgres://", "postgresql+asyncpg://")

# field -> smallest accepted value
_POOL_MINIMUMS = {
    "pool_size": 1,
    "max_overflow": 0,
    "pool_timeout": 1,
    "pool_recycle": 1,
}


@dataclass(frozen=True)
class PostgresConfig:
    url: str
    """DSN; the engine switches it to the asyncpg driver."""

    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    """Seconds to wait for a pooled connection."""

    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "storefront"

    def __post_init__(self) -> None:
        url = (self.url or "").strip()
        if not url.startswith(_SCHEMES):
            raise ValueError(f"DATABASE_URL must start with one of: {', '.join(_SCHEMES)}")
        object.__setattr__(self, "url", url)

        for name, minimum in _POOL_MINIMUMS.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                raise ValueError(f"{name} must be an integer >= {minimum}, got {value!r}")
        if not isinstance(self.echo, bool):
            raise ValueError("echo must be a boolean")
        if not isinstance(self.application_name, str) or not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """Keyword overrides win over env vars, env vars over the defaults."""
        return cls(
            url=str(pick(overrides, "url", "DATABASE_URL", DEFAULT_DATABASE_URL)),
            pool_size=as_int(pick(overrides, "pool_size", "DB_POOL_SIZE", 10), "DB_POOL_SIZE"),
            max_overflow=as_int(pick(overrides, "max_overflow", "DB_MAX_OVERFLOW", 20), "DB_MAX_OVERFLOW"),
            pool_timeout=as_int(pick(overrides, "pool_timeout", "DB_POOL_TIMEOUT", 30), "DB_POOL_TIMEOUT"),
            pool_recycle=as_int(pick(overrides, "pool_recycle", "DB_POOL_RECYCLE", 1800), "DB_POOL_RECYCLE"),
            echo=as_bool(pick(overrides, "echo", "DB_ECHO")),
            application_name=str(pick(overrides, "application_name", "DB_APPLICATION_NAME", "storefront")),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """PostgresConfig from env. Raises ValueError on invalid values."""
    return PostgresConfig.from_env(**overrides)
