"""ProductService: catalog CRUD."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.infra.database.models.product import Product
from storefront.infra.database.repositories.product import ProductRepository

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = ProductRepository(session)

    async def list_products(
        self,
        *,
        category: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Product]:
        return await self._repo.list_all(category=category, search=search, skip=skip, limit=limit)

    async def get_product(self, id: UUID) -> Optional[Product]:
        return await self._repo.get_by_id(id)

    async def create_product(self, data: Dict[str, Any]) -> Product:
        data = dict(data)
        # has_discount follows discount unless set explicitly
        if "has_discount" not in data or data["has_discount"] is None:
            data["has_discount"] = bool(data.get("discount"))
        product = await self._repo.create(data)
        logger.info("ProductService: created product %s (%s)", product.id, product.name)
        return product

    async def update_product(self, id: UUID, data: Dict[str, Any]) -> Optional[Product]:
        return await self._repo.update(id, data)

    async def delete_product(self, id: UUID) -> bool:
        deleted = await self._repo.delete(id)
        if deleted:
            logger.info("ProductService: deleted product %s", id)
        return deleted
