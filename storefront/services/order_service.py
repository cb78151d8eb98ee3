"""OrderService: order intake, lookup, updates and administrative deletes."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from storefront.core.exceptions import ProjectError, ValidationError
from storefront.intake.orchestrator import OrderIntakeOrchestrator
from storefront.intake.types import IntakeResult, Order, OrderSubmission

if TYPE_CHECKING:
    from storefront.config import IntakeConfig
    from storefront.intake.ports import BaseBlobStore, BaseCatalog, BaseOrderStore

logger = logging.getLogger(__name__)

# Fields an operator may change after creation
_UPDATABLE_FIELDS = ("status", "customer_name", "phone_number", "delivery_address", "total_amount")


class OrderService:
    def __init__(
        self,
        order_store: "BaseOrderStore",
        catalog: "BaseCatalog",
        blob_store: "BaseBlobStore",
        *,
        config: Optional["IntakeConfig"] = None,
        intake: Optional[OrderIntakeOrchestrator] = None,
    ) -> None:
        self._orders = order_store
        self._blobs = blob_store
        self._intake = intake or OrderIntakeOrchestrator(
            blob_store, catalog, order_store, config=config
        )

    async def submit(self, submission: OrderSubmission) -> IntakeResult:
        """Create an order. Orders created as Delivered adjust inventory right away.

        The order is already stored when that adjustment runs, so a failure is
        logged rather than raised; the order keeps ``inventory_applied=False``
        and the next status update to Delivered completes it.
        """
        result = await self._intake.submit_order(submission)
        if result.order.is_delivered:
            try:
                result.order = await self._apply_delivery(result.order)
            except ProjectError as exc:
                logger.error(
                    "OrderService: inventory not adjusted for new delivered order=%d: %s",
                    result.order.sequence_id, exc,
                    extra={"sequence_id": result.order.sequence_id, "error": exc.to_dict()},
                )
        return result

    async def list_orders(
        self,
        *,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Order]:
        return await self._orders.list(status=status, skip=skip, limit=limit)

    async def get_order(self, sequence_id: int) -> Optional[Order]:
        return await self._orders.find_by_id(sequence_id)

    async def get_for_user(self, sequence_id: int, user_id: str) -> Optional[Order]:
        return await self._orders.find_for_user(sequence_id, user_id)

    async def update_status(self, sequence_id: int, status: str) -> Optional[Order]:
        return await self.update_order(sequence_id, {"status": status})

    async def update_order(self, sequence_id: int, data: Dict[str, Any]) -> Optional[Order]:
        """Apply ``data`` to the order; returns None when the order does not exist.

        Stock and sold counters move exactly once per order: the first time an
        update leaves it Delivered with the adjustment not yet applied. A failed
        adjustment changes nothing, so repeating the update retries it.
        """
        changes = {k: v for k, v in data.items() if k in _UPDATABLE_FIELDS and v is not None}
        if "status" in changes:
            changes["status"] = str(changes["status"]).strip()
            if not changes["status"]:
                raise ValidationError("status must not be blank", details={"field": "status"})

        previous = await self._orders.find_by_id(sequence_id)
        if previous is None:
            return None
        if not changes:
            return previous

        updated = await self._orders.update(sequence_id, changes)
        if updated is None:
            return None
        logger.info(
            "OrderService: updated order=%d fields=%s", sequence_id, sorted(changes)
        )
        if updated.is_delivered and not updated.inventory_applied:
            updated = await self._apply_delivery(updated)
        return updated

    async def delete_order(self, sequence_id: int) -> Optional[Order]:
        removed = await self._orders.delete(sequence_id)
        if removed is None:
            return None
        await self._delete_blobs(removed.blob_keys(), sequence_id=sequence_id)
        logger.info("OrderService: deleted order=%d", sequence_id)
        return removed

    async def delete_all(self) -> int:
        removed = await self._orders.delete_all()
        keys = [key for order in removed for key in order.blob_keys()]
        await self._delete_blobs(keys)
        logger.warning("OrderService: deleted all orders count=%d blobs=%d", len(removed), len(keys))
        return len(removed)

    # ── Internals ──

    async def _apply_delivery(self, order: Order) -> Order:
        outcome = await self._orders.apply_delivery(order.sequence_id)
        order.inventory_applied = True
        if not outcome.applied:
            logger.info("OrderService: inventory already adjusted for order=%d", order.sequence_id)
            return order
        for product_id in outcome.missing_products:
            logger.warning(
                "OrderService: product %s of order=%d no longer exists, stock not adjusted",
                product_id, order.sequence_id,
            )
        logger.info(
            "OrderService: inventory adjusted for delivered order=%d items=%d",
            order.sequence_id, len(order.line_items),
        )
        return order

    async def _delete_blobs(self, keys: Sequence[str], *, sequence_id: Optional[int] = None) -> None:
        async def _one(key: str) -> None:
            try:
                await self._blobs.delete(key)
            except Exception as exc:
                logger.warning(
                    "OrderService: blob delete failed order=%s blob=%s: %s", sequence_id, key, exc
                )

        await asyncio.gather(*(_one(k) for k in keys))
