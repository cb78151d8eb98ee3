"""PostgreSQL implementations of the order-intake ports.

Each call opens its own session and commits before returning, so nothing is
held open across the workflow's remote I/O. Every call touches one order row,
except apply_delivery, which also updates the order's product rows in the same
transaction.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storefront.core.exceptions import AllocationConflictError, PersistenceError
from storefront.infra.database.repositories.order import OrderRepository
from storefront.infra.database.repositories.product import ProductRepository
from storefront.intake.ports import BaseCatalog, BaseOrderStore
from storefront.intake.types import DeliveryAdjustment, LineItem, Order, ProductSummary

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from storefront.infra.database.models import OrderRecord, Product

logger = logging.getLogger(__name__)

_UPDATABLE = frozenset({"status", "customer_name", "phone_number", "delivery_address", "total_amount"})


# ── Row <-> domain ────────────────────────────────────────────────────────────

def _item_to_json(item: LineItem) -> Dict[str, Any]:
    return {
        "product_ref": item.product_ref,
        "product_id": item.product_id,
        "name": item.name,
        "quantity": item.quantity,
        "unit_price": str(item.unit_price),
        "image_url": item.image_url,
        "image_key": item.image_key,
    }


def _item_from_json(raw: Dict[str, Any]) -> LineItem:
    product_id = str(raw.get("product_id") or "")
    return LineItem(
        product_ref=raw.get("product_ref") or product_id,
        product_id=product_id,
        name=raw.get("name") or "",
        quantity=int(raw.get("quantity") or 1),
        unit_price=Decimal(str(raw.get("unit_price") or "0")),
        image_url=raw.get("image_url"),
        image_key=raw.get("image_key"),
    )


def to_order(record: "OrderRecord") -> Order:
    return Order(
        id=str(record.id),
        sequence_id=record.sequence_id,
        user_id=record.user_id,
        customer_name=record.customer_name,
        phone_number=record.phone_number,
        delivery_address=record.delivery_address,
        total_amount=Decimal(record.total_amount or 0),
        status=record.status,
        payment_proof_url=record.payment_proof_url,
        payment_proof_key=record.payment_proof_key,
        line_items=[_item_from_json(i) for i in record.line_items or []],
        inventory_applied=record.inventory_applied,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_summary(product: "Product") -> ProductSummary:
    return ProductSummary(
        id=str(product.id),
        name=product.name,
        price=Decimal(product.price or 0),
        default_image_url=product.default_image_url,
        current_stock=product.stock_quantity,
        current_sold=product.sold,
    )


def _parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


# ── Order store ───────────────────────────────────────────────────────────────

class SqlOrderStore(BaseOrderStore):
    """Orders table; sequence ids come from the orders_sequence_id_seq sequence."""

    def __init__(self, session_factory: "async_sessionmaker[AsyncSession]") -> None:
        self._session_factory = session_factory

    async def next_sequence_id(self) -> int:
        async with self._session_factory() as session:
            value = await OrderRepository(session).next_sequence_id()
            await session.commit()
            return value

    async def insert(self, order: Order) -> Order:
        data: Dict[str, Any] = {
            "sequence_id": order.sequence_id,
            "user_id": order.user_id,
            "customer_name": order.customer_name,
            "phone_number": order.phone_number,
            "delivery_address": order.delivery_address,
            "total_amount": order.total_amount,
            "status": order.status,
            "payment_proof_url": order.payment_proof_url,
            "payment_proof_key": order.payment_proof_key,
            "line_items": [_item_to_json(i) for i in order.line_items],
            "inventory_applied": order.inventory_applied,
        }
        if order.created_at is not None:
            data["created_at"] = order.created_at
            data["updated_at"] = order.updated_at or order.created_at

        async with self._session_factory() as session:
            try:
                record = await OrderRepository(session).create(data)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if "sequence_id" in str(exc.orig):
                    raise AllocationConflictError(
                        f"Sequence id {order.sequence_id} is already taken",
                        details={"sequence_id": order.sequence_id},
                        cause=exc,
                    ) from exc
                raise PersistenceError(
                    "Order violates a database constraint",
                    details={"cause": str(exc.orig)},
                    cause=exc,
                ) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(
                    "Order could not be stored",
                    details={"cause": str(exc)},
                    cause=exc,
                ) from exc
            logger.debug("SqlOrderStore: inserted order=%d id=%s", record.sequence_id, record.id)
            return to_order(record)

    async def find_by_id(self, sequence_id: int) -> Optional[Order]:
        async with self._session_factory() as session:
            record = await OrderRepository(session).get_by_sequence_id(sequence_id)
            return to_order(record) if record else None

    async def find_for_user(self, sequence_id: int, user_id: str) -> Optional[Order]:
        async with self._session_factory() as session:
            record = await OrderRepository(session).get_for_user(sequence_id, user_id)
            return to_order(record) if record else None

    async def list(self, *, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Order]:
        async with self._session_factory() as session:
            records = await OrderRepository(session).list_all(status=status, skip=skip, limit=limit)
            return [to_order(r) for r in records]

    async def update(self, sequence_id: int, changes: Dict[str, Any]) -> Optional[Order]:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"Order fields are not updatable: {sorted(unknown)}")
        async with self._session_factory() as session:
            record = await OrderRepository(session).update_by_sequence_id(sequence_id, changes)
            if record is None:
                return None
            await session.commit()
            return to_order(record)

    async def apply_delivery(self, sequence_id: int) -> DeliveryAdjustment:
        async with self._session_factory() as session:
            orders = OrderRepository(session)
            products = ProductRepository(session)
            try:
                if not await orders.claim_inventory_adjustment(sequence_id):
                    return DeliveryAdjustment(applied=False)
                record = await orders.get_by_sequence_id(sequence_id)
                missing: List[str] = []
                items = sorted((_item_from_json(raw) for raw in record.line_items or []), key=lambda i: i.product_id)
                # Fixed row order so concurrent deliveries sharing products cannot deadlock
                for item in items:
                    pid = _parse_uuid(item.product_id)
                    if pid is None or not await products.adjust_inventory(pid, item.quantity):
                        missing.append(item.product_id)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(
                    f"Inventory adjustment for order {sequence_id} failed",
                    details={"sequence_id": sequence_id, "cause": str(exc)},
                    cause=exc,
                ) from exc
        return DeliveryAdjustment(applied=True, missing_products=missing)

    async def delete(self, sequence_id: int) -> Optional[Order]:
        async with self._session_factory() as session:
            record = await OrderRepository(session).delete_by_sequence_id(sequence_id)
            if record is None:
                return None
            await session.commit()
            return to_order(record)

    async def delete_all(self) -> List[Order]:
        async with self._session_factory() as session:
            records = await OrderRepository(session).delete_all()
            await session.commit()
            return [to_order(r) for r in records]


# ── Catalog ───────────────────────────────────────────────────────────────────

class SqlCatalog(BaseCatalog):
    """Products table as the catalog behind line-item resolution."""

    def __init__(self, session_factory: "async_sessionmaker[AsyncSession]") -> None:
        self._session_factory = session_factory

    async def find_by_id(self, product_id: str) -> Optional[ProductSummary]:
        pid = _parse_uuid(product_id)
        if pid is None:
            return None
        async with self._session_factory() as session:
            product = await ProductRepository(session).get_by_id(pid)
            return to_summary(product) if product else None

    async def find_by_name(self, name: str) -> Optional[ProductSummary]:
        async with self._session_factory() as session:
            product = await ProductRepository(session).get_by_name(name)
            return to_summary(product) if product else None
