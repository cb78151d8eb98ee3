"""
storefront.infra.database.engine – process-wide AsyncEngine and session factory.

build_engine() creates the engine once per process from PostgresConfig (or env);
build_session_factory() binds sessions to it. init_db() creates whatever tables
and the order sequence are missing, then moves the sequence past existing order
numbers so imported orders never collide with new ones.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# The models package registers every table and the order sequence on Base.metadata
from storefront.infra.database.models import ORDER_SEQUENCE, Base

if TYPE_CHECKING:
    from storefront.config import PostgresConfig

logger = logging.getLogger(__name__)

# Only plain identifiers are interpolated into CREATE DATABASE
_SAFE_DBNAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Raise the sequence to MAX(sequence_id) when rows are ahead of it; never lower it
_SYNC_ORDER_SEQUENCE = text(
    f"""
    SELECT setval('{ORDER_SEQUENCE.name}', s.top)
    FROM (SELECT MAX(sequence_id) AS top FROM orders) AS s
    WHERE s.top IS NOT NULL
      AND s.top >= (
        SELECT CASE WHEN is_called THEN last_value + 1 ELSE last_value END
        FROM {ORDER_SEQUENCE.name}
      )
    """
)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _config_or_env(config: Optional["PostgresConfig"]) -> "PostgresConfig":
    if config is not None:
        return config
    from storefront.config import load_postgres_config
    return load_postgres_config()


def _asyncpg_url(url: str) -> str:
    """postgres:// and postgresql:// DSNs get the asyncpg driver; others pass through."""
    scheme, sep, rest = url.partition("://")
    if sep and scheme in ("postgres", "postgresql"):
        return f"postgresql+asyncpg://{rest}"
    return url


def _admin_target(url: str) -> Tuple[str, str]:
    """Return (database name, DSN of the 'postgres' maintenance database on the same server)."""
    parsed = urlparse(url.replace("postgresql+asyncpg://", "postgresql://", 1))
    dbname = parsed.path.strip("/") or "postgres"
    return dbname, urlunparse(parsed._replace(path="/postgres"))


def _pool_options(config: "PostgresConfig", use_null_pool: bool) -> Dict[str, Any]:
    if use_null_pool:
        return {"poolclass": NullPool}
    return {
        "pool_size": config.pool_size,
        "max_overflow": config.max_overflow,
        "pool_timeout": config.pool_timeout,
        "pool_recycle": config.pool_recycle,
        "pool_pre_ping": True,
    }


async def ensure_database_exists(config: Optional["PostgresConfig"] = None) -> bool:
    """
    Create the configured database when it is missing. Returns True if created.

    An unreachable server is left for the engine to report on first use.
    """
    config = _config_or_env(config)
    dbname, admin_url = _admin_target(config.url)
    if dbname == "postgres":
        return False
    if not _SAFE_DBNAME.match(dbname):
        logger.warning("ensure_database_exists: refusing to create database %r", dbname)
        return False

    try:
        conn = await asyncpg.connect(admin_url)
    except Exception as exc:
        logger.debug("ensure_database_exists: server not reachable (%s)", exc)
        return False
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname):
            return False
        await conn.execute(f'CREATE DATABASE "{dbname}"')
    finally:
        await conn.close()
    logger.info("Database %s created", dbname)
    return True


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    echo: Optional[bool] = None,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """
    Return the process-wide engine, creating it on the first call.

    Args:
        config: PostgresConfig; loaded from env when None.
        echo: Override config.echo.
        use_null_pool: No pooling (one-off scripts).
    """
    global _engine
    if _engine is None:
        config = _config_or_env(config)
        _engine = create_async_engine(
            _asyncpg_url(config.url),
            echo=config.echo if echo is None else echo,
            connect_args={
                "server_settings": {
                    "application_name": config.application_name,
                    "jit": "off",
                }
            },
            **_pool_options(config, use_null_pool),
        )
        if use_null_pool:
            logger.info("AsyncEngine created without pooling")
        else:
            logger.info(
                "AsyncEngine created: pool_size=%d max_overflow=%d",
                config.pool_size, config.max_overflow,
            )
    return _engine


def build_session_factory(
    engine: Optional[AsyncEngine] = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine`` (the process-wide one by default)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            engine or build_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def init_db(
    config: Optional["PostgresConfig"] = None,
    *,
    drop_all: bool = False,
) -> None:
    """Create missing tables and the order sequence. Use real migrations in production."""
    engine = build_engine(config)
    async with engine.begin() as conn:
        if drop_all:
            logger.warning("init_db: dropping all tables")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(_SYNC_ORDER_SEQUENCE)
    logger.info("Database schema ready")


async def close_engine() -> None:
    """Dispose the pool and forget the cached engine. Call on shutdown."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("AsyncEngine disposed")
