"""Collaborator contracts consumed by the order-intake workflow.

Concrete implementations live in ``storefront.infra`` (PostgreSQL, S3); the
tests substitute in-memory fakes.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from storefront.intake.types import DeliveryAdjustment, Order, ProductSummary


class BaseBlobStore(ABC):
    """Object storage. Errors are surfaced, never retried here."""

    @abstractmethod
    async def put(self, data: bytes, name: str, content_type: str) -> str:
        """Store ``data`` under the logical ``name`` and return its public URL."""

    @abstractmethod
    async def delete(self, name: str) -> None:
        ...


class BaseCatalog(ABC):
    @abstractmethod
    async def find_by_id(self, product_id: str) -> Optional[ProductSummary]:
        ...

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[ProductSummary]:
        ...


class BaseOrderStore(ABC):
    """Per-document atomicity; apply_delivery alone also writes product rows."""

    @abstractmethod
    async def next_sequence_id(self) -> int:
        """Hand out a sequence id no other caller will receive."""

    @abstractmethod
    async def insert(self, order: Order) -> Order:
        """Raise AllocationConflictError if sequence_id is taken, PersistenceError otherwise."""

    @abstractmethod
    async def find_by_id(self, sequence_id: int) -> Optional[Order]:
        ...

    @abstractmethod
    async def find_for_user(self, sequence_id: int, user_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    async def list(self, *, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Order]:
        ...

    @abstractmethod
    async def update(self, sequence_id: int, changes: Dict[str, Any]) -> Optional[Order]:
        ...

    @abstractmethod
    async def apply_delivery(self, sequence_id: int) -> DeliveryAdjustment:
        """Flag the order's inventory as adjusted and move stock for every line item.

        Both happen in one transaction: on error neither the flag nor any
        product changes, so a later call can apply the adjustment in full.
        Only the first successful call per order returns ``applied=True``.
        """

    @abstractmethod
    async def delete(self, sequence_id: int) -> Optional[Order]:
        """Remove one order and return what was removed."""

    @abstractmethod
    async def delete_all(self) -> List[Order]:
        ...
