"""Config loading from env: storage, intake limits, postgres, logger."""
from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from storefront.config import IntakeConfig, PostgresConfig, StorageConfig, load_intake_config, load_storage_config
from storefront.core.logger import LoggerConfig


class TestStorageConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = load_storage_config()

        self.assertEqual(cfg.host, "localhost:9000")
        self.assertFalse(cfg.secure)
        self.assertEqual(cfg.object_url("payments/a.png"), "http://localhost:9000/storefront-media/payments/a.png")

    def test_https_endpoint_implies_secure(self):
        env = {"S3_ENDPOINT": "https://s3.example.com/", "S3_BUCKET": "shop-media"}
        with patch.dict(os.environ, env, clear=True):
            cfg = load_storage_config()

        self.assertTrue(cfg.secure)
        self.assertEqual(cfg.host, "s3.example.com")
        self.assertEqual(cfg.object_url("k.png"), "https://s3.example.com/shop-media/k.png")

    def test_public_url_overrides_object_links(self):
        cfg = StorageConfig(
            endpoint="minio:9000", access_key="a", secret_key="b", public_url="https://cdn.example.com/media/"
        )
        self.assertEqual(cfg.object_url("products/x.jpg"), "https://cdn.example.com/media/products/x.jpg")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            StorageConfig(endpoint="minio:9000", access_key="a", secret_key="b", bucket="Bad_Bucket")
        with self.assertRaises(ValueError):
            StorageConfig(endpoint="", access_key="a", secret_key="b")
        with self.assertRaises(ValueError):
            StorageConfig(endpoint="minio:9000", access_key="", secret_key="b")


class TestIntakeConfig(unittest.TestCase):
    def test_env_values(self):
        env = {
            "ORDER_UPLOAD_TIMEOUT": "5",
            "ORDER_MAX_PRODUCT_IMAGES": "3",
            "ORDER_ALLOWED_IMAGE_TYPES": "image/png, IMAGE/JPEG",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = load_intake_config()

        self.assertEqual(cfg.upload_timeout_seconds, 5.0)
        self.assertEqual(cfg.max_product_images, 3)
        self.assertEqual(cfg.allowed_image_types, frozenset({"image/png", "image/jpeg"}))
        self.assertEqual(cfg.allocation_attempts, 3)

    def test_overrides_win_over_env(self):
        with patch.dict(os.environ, {"ORDER_ALLOCATION_ATTEMPTS": "9"}, clear=True):
            cfg = load_intake_config(allocation_attempts=2)
        self.assertEqual(cfg.allocation_attempts, 2)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            IntakeConfig(catalog_timeout_seconds=0)
        with self.assertRaises(ValueError):
            IntakeConfig(allocation_attempts=0)
        with self.assertRaises(ValueError):
            IntakeConfig(allowed_image_types=frozenset())


class TestPostgresConfig(unittest.TestCase):
    def test_default_url(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = PostgresConfig.from_env()
        self.assertEqual(cfg.url, "postgresql://localhost/storefront")

    def test_rejects_other_schemes(self):
        with self.assertRaises(ValueError):
            PostgresConfig(url="mysql://localhost/db")

    def test_pool_settings_from_env(self):
        env = {"DB_POOL_SIZE": "5", "DB_MAX_OVERFLOW": "0", "DB_ECHO": "yes"}
        with patch.dict(os.environ, env, clear=True):
            cfg = PostgresConfig.from_env(pool_timeout=7)

        self.assertEqual(cfg.pool_size, 5)
        self.assertEqual(cfg.max_overflow, 0)
        self.assertEqual(cfg.pool_timeout, 7)
        self.assertTrue(cfg.echo)

    def test_invalid_pool_settings(self):
        with patch.dict(os.environ, {"DB_POOL_SIZE": "many"}, clear=True):
            with self.assertRaises(ValueError):
                PostgresConfig.from_env()
        with self.assertRaises(ValueError):
            PostgresConfig(url="postgresql://localhost/db", pool_size=0)


class TestLoggerConfig(unittest.TestCase):
    def test_from_env(self):
        env = {"LOG_LEVEL": "debug", "LOG_DIR": "/tmp/logs", "LOG_CONSOLE": "false"}
        with patch.dict(os.environ, env, clear=True):
            cfg = LoggerConfig.from_env()

        self.assertEqual(cfg.level, "DEBUG")
        self.assertEqual(cfg.log_dir, "/tmp/logs")
        self.assertFalse(cfg.console)
        self.assertEqual(cfg.root_name, "storefront")

    def test_with_overrides_ignores_none(self):
        cfg = LoggerConfig().with_overrides(level="WARNING", log_dir=None)
        self.assertEqual(cfg.level, "WARNING")
        self.assertIsNone(cfg.log_dir)


if __name__ == "__main__":
    unittest.main()
