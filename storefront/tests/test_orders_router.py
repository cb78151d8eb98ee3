"""HTTP tests for the orders router: multipart intake, envelope, lookups, updates."""
from __future__ import annotations

import json
import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.api.errors import register_exception_handlers
from storefront.api.rate_limit import limiter
from storefront.services.order_service import OrderService
from storefront.tests.fakes import FakeBlobStore, FakeCatalog, FakeOrderStore, product

_FIELDS = {
    "userId": "user-1",
    "name": "Ada",
    "phoneNumber": "+15550100",
    "deliveryAddress": "1 Main St",
    "amount": "0",
    "orderDetails": json.dumps([
        {"productId": "p1", "quantity": 2},
        {"product": "Blue Plate", "price": 99},
    ]),
}


def _payment():
    return ("paymentImage", ("pay.png", b"payment-bytes", "image/png"))


def _make_test_app(service, *, debug=False):
    """Minimal app with the orders router mounted and app.state filled in."""
    from storefront.api.routers import orders

    app = FastAPI()
    app.state.limiter = limiter
    app.state.order_service = service
    register_exception_handlers(app, debug=debug)
    app.include_router(orders.router)
    return app


class _RouterCase(unittest.TestCase):
    def setUp(self):
        limiter.reset()
        self.blobs = FakeBlobStore()
        self.catalog = FakeCatalog([product("p1", "Red Mug", "300"), product("p3", "Blue Plate", "120")])
        self.store = FakeOrderStore(catalog=self.catalog)
        self.service = OrderService(self.store, self.catalog, self.blobs)
        self.client = TestClient(_make_test_app(self.service))

    def _post(self, fields=None, files=None):
        return self.client.post(
            "/orders",
            data=_FIELDS if fields is None else fields,
            files=[_payment()] if files is None else files,
        )


class TestCreateOrder(_RouterCase):
    def test_creates_order_with_images(self):
        files = [
            _payment(),
            ("productImages[]", ("a.jpg", b"image-a", "image/jpeg")),
            ("productImages[]", ("b.webp", b"image-b", "image/webp")),
        ]

        resp = self._post(files=files)

        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        order = body["order"]
        self.assertEqual(order["sequence_id"], 1)
        self.assertEqual(order["status"], "Pending")
        self.assertEqual(order["total_amount"], 699.0)
        self.assertEqual([i["product_id"] for i in order["line_items"]], ["p1", "p3"])
        self.assertTrue(order["line_items"][0]["image_url"].startswith("https://cdn.test/products/"))
        self.assertTrue(order["payment_proof_url"].startswith("https://cdn.test/payments/"))
        self.assertEqual(body["upload_failures"], [])
        self.assertNotIn("payment_proof_key", resp.text)
        self.assertNotIn("image_key", resp.text)

    def test_field_names_are_trimmed(self):
        fields = {f" {k} ": v for k, v in _FIELDS.items()}

        resp = self._post(fields=fields)

        self.assertEqual(resp.status_code, 201, resp.text)

    def test_missing_fields_envelope(self):
        fields = dict(_FIELDS)
        del fields["userId"]
        del fields["phoneNumber"]

        resp = self._post(fields=fields)

        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["code"], "MISSING_FIELD")
        self.assertEqual(body["details"]["fields"], ["userId", "phoneNumber"])
        self.assertEqual(self.blobs.put_calls, [])

    def test_missing_payment_proof(self):
        resp = self._post(files=[("productImages", ("a.png", b"image-a", "image/png"))])

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "PAYMENT_PROOF_MISSING")
        self.assertEqual(self.blobs.put_calls, [])

    def test_non_numeric_amount(self):
        resp = self._post(fields={**_FIELDS, "amount": "lots"})

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "VALIDATION_ERROR")
        self.assertEqual(resp.json()["details"], {"field": "amount"})

    def test_malformed_line_items(self):
        resp = self._post(fields={**_FIELDS, "orderDetails": "[{"})

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "MALFORMED_LINE_ITEMS")
        self.assertEqual(self.blobs.objects, {})

    def test_upload_failure_hides_details(self):
        self.blobs.fail_data.add(b"payment-bytes")

        resp = self._post()

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["code"], "UPLOAD_ERROR")
        self.assertNotIn("details", body)

    def test_debug_mode_exposes_server_error_details(self):
        self.blobs.fail_data.add(b"payment-bytes")
        client = TestClient(_make_test_app(self.service, debug=True))

        resp = client.post("/orders", data=_FIELDS, files=[_payment()])

        self.assertEqual(resp.json()["details"]["blob"], "paymentImage")

    def test_unexpected_error_is_generic_500(self):
        async def _boom(submission):
            raise RuntimeError("secret internals")

        self.service.submit = _boom
        client = TestClient(_make_test_app(self.service), raise_server_exceptions=False)

        resp = client.post("/orders", data=_FIELDS, files=[_payment()])

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"detail": "Internal server error", "code": "INTERNAL_ERROR"})


class TestOrderLookupsAndUpdates(_RouterCase):
    def setUp(self):
        super().setUp()
        self.assertEqual(self._post().status_code, 201)

    def test_get_order(self):
        self.assertEqual(self.client.get("/orders/1").json()["customer_name"], "Ada")
        self.assertEqual(self.client.get("/orders/2").status_code, 404)

    def test_get_order_for_user(self):
        self.assertEqual(self.client.get("/orders/1/user-1").status_code, 200)
        self.assertEqual(self.client.get("/orders/1/user-2").status_code, 404)

    def test_list_orders_by_status(self):
        self.assertEqual(len(self.client.get("/orders").json()), 1)
        self.assertEqual(self.client.get("/orders", params={"status": "Delivered"}).json(), [])

    def test_patch_delivered_twice_adjusts_once(self):
        for _ in range(2):
            resp = self.client.patch("/orders/1", json={"status": "Delivered"})
            self.assertEqual(resp.status_code, 200)

        self.assertEqual(self.catalog.products["p1"].current_stock, 8)
        self.assertEqual(self.catalog.products["p3"].current_stock, 9)

    def test_put_updates_customer_fields(self):
        resp = self.client.put("/orders/1", json={"delivery_address": "2 Side St", "total_amount": 10.5})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["delivery_address"], "2 Side St")
        self.assertEqual(resp.json()["total_amount"], 10.5)

    def test_patch_unknown_order(self):
        self.assertEqual(self.client.patch("/orders/9", json={"status": "Cancelled"}).status_code, 404)

    def test_delete_order(self):
        self.assertEqual(self.client.delete("/orders/1").status_code, 204)
        self.assertEqual(self.client.get("/orders/1").status_code, 404)
        self.assertEqual(self.blobs.objects, {})

    def test_delete_all(self):
        self.assertEqual(self._post().status_code, 201)

        resp = self.client.delete("/orders")

        self.assertEqual(resp.json(), {"deleted": 2})


if __name__ == "__main__":
    unittest.main()
