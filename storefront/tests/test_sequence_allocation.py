"""Sequence id allocation under concurrent submissions."""
from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock

from storefront.config import IntakeConfig
from storefront.core.exceptions import AllocationConflictError, PersistenceError
from storefront.intake.orchestrator import OrderIntakeOrchestrator
from storefront.tests.fakes import (
    FakeBlobStore,
    FakeCatalog,
    FakeOrderStore,
    RacyOrderStore,
    product,
    submission,
)


def _run(coro):
    return asyncio.run(coro)


async def _submit_many(intake, n):
    return await asyncio.gather(
        *(intake.submit_order(submission(user_id=f"user-{i}")) for i in range(n)),
        return_exceptions=True,
    )


class TestConcurrentAllocation(unittest.TestCase):
    def setUp(self):
        self.blobs = FakeBlobStore()
        self.catalog = FakeCatalog([product("p1", "Red Mug")])

    def test_concurrent_orders_get_distinct_ids(self):
        store = FakeOrderStore()
        intake = OrderIntakeOrchestrator(self.blobs, self.catalog, store)

        results = _run(_submit_many(intake, 20))

        ids = [r.order.sequence_id for r in results]
        self.assertEqual(sorted(ids), list(range(1, 21)))
        self.assertEqual(len(store.orders), 20)

    def test_conflicts_are_retried_until_every_order_lands(self):
        store = RacyOrderStore()
        intake = OrderIntakeOrchestrator(
            self.blobs, self.catalog, store, config=IntakeConfig(allocation_attempts=5)
        )

        results = _run(_submit_many(intake, 5))

        errors = [r for r in results if isinstance(r, BaseException)]
        self.assertEqual(errors, [])
        self.assertEqual(sorted(r.order.sequence_id for r in results), [1, 2, 3, 4, 5])

    def test_exhausted_retries_surface_conflict_and_compensate(self):
        store = FakeOrderStore()
        store.next_sequence_id = AsyncMock(return_value=7)
        store.orders[7] = None  # taken
        intake = OrderIntakeOrchestrator(
            self.blobs, self.catalog, store, config=IntakeConfig(allocation_attempts=3)
        )

        with self.assertRaises(AllocationConflictError) as ctx:
            _run(intake.submit_order(submission()))

        self.assertEqual(ctx.exception.details["attempts"], 3)
        self.assertEqual(ctx.exception.http_status, 503)
        self.assertEqual(store.insert_calls, 3)
        self.assertEqual(self.blobs.objects, {})

    def test_unresponsive_store_is_persistence_error(self):
        store = FakeOrderStore()

        async def _hang():
            await asyncio.sleep(1)

        store.next_sequence_id = _hang
        intake = OrderIntakeOrchestrator(
            self.blobs, self.catalog, store, config=IntakeConfig(store_timeout_seconds=0.05)
        )

        with self.assertRaises(PersistenceError) as ctx:
            _run(intake.submit_order(submission()))

        self.assertEqual(ctx.exception.details["cause"], "timeout")
        self.assertEqual(self.blobs.objects, {})


if __name__ == "__main__":
    unittest.main()
