"""Tests for line-item parsing and the catalog resolver."""
from __future__ import annotations

import asyncio
import unittest
from decimal import Decimal

from storefront.core.exceptions import MalformedLineItemsError, ResolutionError
from storefront.intake.line_items import LineItemResolver, parse_line_items
from storefront.intake.types import StoredBlob
from storefront.tests.fakes import FakeCatalog, product


def _run(coro):
    return asyncio.run(coro)


class TestParseLineItems(unittest.TestCase):
    def test_accepts_both_id_spellings(self):
        entries = parse_line_items('[{"productId": "a"}, {"product_id": "b", "quantity": "2"}]')

        self.assertEqual([e.ref for e in entries], ["a", "b"])
        self.assertEqual(entries[1].quantity, 2)

    def test_numeric_ids_become_text(self):
        entries = parse_line_items('[{"productId": 17, "product": "  Mug  "}]')

        self.assertEqual(entries[0].product_id, "17")
        self.assertEqual(entries[0].product, "Mug")

    def test_name_is_used_when_id_blank(self):
        entries = parse_line_items('[{"productId": "  ", "product": "Mug"}]')

        self.assertEqual(entries[0].ref, "Mug")

    def test_invalid_json_reports_position(self):
        with self.assertRaises(MalformedLineItemsError) as ctx:
            parse_line_items('[{"productId": "a",}]')

        self.assertEqual(ctx.exception.details["line"], 1)
        self.assertIn("column", ctx.exception.details)

    def test_object_instead_of_array(self):
        with self.assertRaises(MalformedLineItemsError) as ctx:
            parse_line_items('{"productId": "a"}')
        self.assertEqual(ctx.exception.details["type"], "dict")

    def test_non_object_entry(self):
        with self.assertRaises(MalformedLineItemsError) as ctx:
            parse_line_items('[{"productId": "a"}, 3]')
        self.assertEqual(ctx.exception.details["index"], 1)

    def test_negative_price_rejected(self):
        with self.assertRaises(MalformedLineItemsError) as ctx:
            parse_line_items('[{"productId": "a", "price": -1}]')
        self.assertEqual(ctx.exception.details["index"], 0)

    def test_fractional_quantity_rejected(self):
        with self.assertRaises(MalformedLineItemsError):
            parse_line_items('[{"productId": "a", "quantity": 1.5}]')

    def test_empty_array_parses(self):
        self.assertEqual(parse_line_items("[]"), [])


class TestLineItemResolver(unittest.TestCase):
    def setUp(self):
        self.catalog = FakeCatalog([product("p1", "Red Mug", "300"), product("p2", "Free Sticker", "0")])

    def _resolve(self, raw, slots=()):
        resolver = LineItemResolver(self.catalog, timeout_seconds=1)
        return _run(resolver.resolve(parse_line_items(raw), list(slots)))

    def test_zero_quantity_and_price_fall_back(self):
        items = self._resolve('[{"productId": "p1", "quantity": 0, "price": 0}]')

        self.assertEqual(items[0].quantity, 1)
        self.assertEqual(items[0].unit_price, Decimal("300"))

    def test_catalog_without_price_gives_zero(self):
        items = self._resolve('[{"productId": "p2"}]')

        self.assertEqual(items[0].unit_price, Decimal("0"))

    def test_unresolved_entries_keep_their_slot(self):
        items = self._resolve('[{"productId": "zzz"}, {"productId": "p1"}]')

        self.assertIsNone(items[0])
        self.assertEqual(items[1].product_id, "p1")

    def test_failed_upload_slot_gives_null_image(self):
        slots = [None, StoredBlob(key="products/k2.png", url="https://cdn.test/products/k2.png")]

        items = self._resolve('[{"productId": "p1"}, {"productId": "p1"}]', slots)

        self.assertIsNone(items[0].image_url)
        self.assertEqual(items[1].image_url, "https://cdn.test/products/k2.png")
        self.assertEqual(items[1].image_key, "products/k2.png")

    def test_slow_catalog_is_resolution_error(self):
        class _SlowCatalog(FakeCatalog):
            async def find_by_id(self, product_id):
                await asyncio.sleep(1)

        resolver = LineItemResolver(_SlowCatalog(), timeout_seconds=0.05)

        with self.assertRaises(ResolutionError) as ctx:
            _run(resolver.resolve(parse_line_items('[{"productId": "p1"}]'), []))
        self.assertEqual(ctx.exception.details["cause"], "timeout")

    def test_failed_lookup_cancels_the_others(self):
        catalog = FakeCatalog([product("p1", "Red Mug"), product("p2", "Green Mug")], fail_refs=["p2"], delays={"p1": 5})
        resolver = LineItemResolver(catalog)

        with self.assertRaises(ResolutionError) as ctx:
            _run(resolver.resolve(parse_line_items('[{"productId": "p1"}, {"productId": "p2"}]'), []))

        self.assertEqual(ctx.exception.details["product_ref"], "p2")
        self.assertEqual(catalog.cancelled, ["p1"])


if __name__ == "__main__":
    unittest.main()
