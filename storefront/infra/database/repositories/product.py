"""Product repository."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update

from storefront.infra.database.models.product import Product
from storefront.infra.database.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product

    async def list_all(
        self,
        *,
        category: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Product]:
        stmt = select(Product).order_by(Product.created_at.desc())
        if category:
            stmt = stmt.where(Product.category == category)
        if search:
            stmt = stmt.where(Product.name.ilike(f"%{search}%"))
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> Optional[Product]:
        """Exact name match first, then case-insensitive; oldest product wins ties."""
        for condition in (Product.name == name, func.lower(Product.name) == name.lower()):
            stmt = select(Product).where(condition).order_by(Product.created_at).limit(1)
            result = await self.session.execute(stmt)
            product = result.scalar_one_or_none()
            if product is not None:
                return product
        return None

    async def adjust_inventory(self, id: UUID, quantity: int) -> bool:
        """stock -= quantity, sold += quantity in one statement."""
        stmt = (
            update(Product)
            .where(Product.id == id)
            .values(
                stock_quantity=Product.stock_quantity - quantity,
                sold=Product.sold + quantity,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
