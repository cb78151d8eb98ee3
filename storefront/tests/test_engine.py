"""Engine helpers: driver URL, maintenance DSN, database bootstrap with asyncpg mocked."""
from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from storefront.config import PostgresConfig
from storefront.infra.database.engine import _admin_target, _asyncpg_url, ensure_database_exists


def _run(coro):
    return asyncio.run(coro)


def _conn(exists: bool) -> MagicMock:
    conn = MagicMock()
    conn.fetchval = AsyncMock(return_value=1 if exists else None)
    conn.execute = AsyncMock()
    conn.close = AsyncMock()
    return conn


class TestUrls(unittest.TestCase):
    def test_asyncpg_driver(self):
        self.assertEqual(_asyncpg_url("postgres://u:p@db/shop"), "postgresql+asyncpg://u:p@db/shop")
        self.assertEqual(_asyncpg_url("postgresql://db/shop"), "postgresql+asyncpg://db/shop")
        self.assertEqual(_asyncpg_url("postgresql+asyncpg://db/shop"), "postgresql+asyncpg://db/shop")

    def test_admin_target(self):
        dbname, admin = _admin_target("postgresql+asyncpg://u:p@db:5432/shop?sslmode=disable")
        self.assertEqual(dbname, "shop")
        self.assertEqual(admin, "postgresql://u:p@db:5432/postgres?sslmode=disable")


class TestEnsureDatabaseExists(unittest.TestCase):
    def test_creates_missing_database(self):
        conn = _conn(exists=False)
        with patch("storefront.infra.database.engine.asyncpg.connect", AsyncMock(return_value=conn)):
            created = _run(ensure_database_exists(PostgresConfig(url="postgresql://db/shop")))

        self.assertTrue(created)
        conn.execute.assert_awaited_once_with('CREATE DATABASE "shop"')
        conn.close.assert_awaited_once()

    def test_existing_database_untouched(self):
        conn = _conn(exists=True)
        with patch("storefront.infra.database.engine.asyncpg.connect", AsyncMock(return_value=conn)):
            created = _run(ensure_database_exists(PostgresConfig(url="postgresql://db/shop")))

        self.assertFalse(created)
        conn.execute.assert_not_awaited()

    def test_unsafe_name_refused(self):
        connect = AsyncMock()
        with patch("storefront.infra.database.engine.asyncpg.connect", connect):
            created = _run(ensure_database_exists(PostgresConfig(url="postgresql://db/shop;drop")))

        self.assertFalse(created)
        connect.assert_not_awaited()

    def test_unreachable_server(self):
        with patch("storefront.infra.database.engine.asyncpg.connect", AsyncMock(side_effect=OSError("refused"))):
            created = _run(ensure_database_exists(PostgresConfig(url="postgresql://db/shop")))
        self.assertFalse(created)


if __name__ == "__main__":
    unittest.main()
