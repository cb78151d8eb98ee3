"""S3BlobStore against a mocked minio client."""
from __future__ import annotations

import asyncio
import unittest
from unittest.mock import MagicMock

from storefront.config import StorageConfig
from storefront.core.exceptions import ExternalServiceError
from storefront.infra.storage import S3BlobStore


def _run(coro):
    return asyncio.run(coro)


def _config(**overrides):
    values = {"endpoint": "http://minio:9000", "access_key": "key", "secret_key": "secret", "bucket": "orders"}
    values.update(overrides)
    return StorageConfig(**values)


class TestS3BlobStore(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.store = S3BlobStore(_config(), client=self.client)

    def test_put_writes_object_and_returns_url(self):
        url = _run(self.store.put(b"abc", "payments/1-x.png", "image/png"))

        self.assertEqual(url, "http://minio:9000/orders/payments/1-x.png")
        args, kwargs = self.client.put_object.call_args
        self.assertEqual(args[0], "orders")
        self.assertEqual(args[1], "payments/1-x.png")
        self.assertEqual(args[2].read(), b"abc")
        self.assertEqual(kwargs, {"length": 3, "content_type": "image/png"})

    def test_put_failure_raises_without_retry(self):
        self.client.put_object.side_effect = OSError("connection reset")

        with self.assertRaises(ExternalServiceError) as ctx:
            _run(self.store.put(b"abc", "products/k.png", "image/png"))

        self.assertEqual(ctx.exception.details, {"blob": "products/k.png"})
        self.assertEqual(self.client.put_object.call_count, 1)

    def test_delete_removes_object(self):
        _run(self.store.delete("products/k.png"))

        self.client.remove_object.assert_called_once_with("orders", "products/k.png")

    def test_delete_failure_raises(self):
        self.client.remove_object.side_effect = OSError("gone")

        with self.assertRaises(ExternalServiceError):
            _run(self.store.delete("products/k.png"))

    def test_ensure_bucket_creates_missing_bucket(self):
        self.client.bucket_exists.return_value = False

        created = _run(self.store.ensure_bucket())

        self.assertTrue(created)
        self.client.make_bucket.assert_called_once_with("orders")

    def test_ensure_bucket_keeps_existing_bucket(self):
        self.client.bucket_exists.return_value = True

        self.assertFalse(_run(self.store.ensure_bucket()))
        self.client.make_bucket.assert_not_called()

    def test_public_url_is_used_for_links(self):
        store = S3BlobStore(_config(public_url="https://cdn.example.com"), client=self.client)

        url = _run(store.put(b"abc", "products/k.png", "image/png"))

        self.assertEqual(url, "https://cdn.example.com/products/k.png")


if __name__ == "__main__":
    unittest.main()
