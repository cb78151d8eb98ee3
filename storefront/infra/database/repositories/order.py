"""Order repository. Orders are addressed by their sequence id."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update

from storefront.infra.database.models.order import ORDER_SEQUENCE, OrderRecord
from storefront.infra.database.repositories.base import BaseRepository


class OrderRepository(BaseRepository[OrderRecord]):
    model = OrderRecord

    async def next_sequence_id(self) -> int:
        return int(await self.session.scalar(select(ORDER_SEQUENCE.next_value())))

    async def get_by_sequence_id(self, sequence_id: int) -> Optional[OrderRecord]:
        stmt = select(OrderRecord).where(OrderRecord.sequence_id == sequence_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_user(self, sequence_id: int, user_id: str) -> Optional[OrderRecord]:
        stmt = select(OrderRecord).where(
            OrderRecord.sequence_id == sequence_id,
            OrderRecord.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(
        self,
        *,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[OrderRecord]:
        stmt = select(OrderRecord).order_by(OrderRecord.created_at.desc(), OrderRecord.sequence_id.desc())
        if status:
            stmt = stmt.where(OrderRecord.status == status)
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_by_sequence_id(self, sequence_id: int, data: Dict[str, Any]) -> Optional[OrderRecord]:
        record = await self.get_by_sequence_id(sequence_id)
        if record is None:
            return None
        return await self.apply(record, data)

    async def claim_inventory_adjustment(self, sequence_id: int) -> bool:
        """Compare-and-set on inventory_applied; concurrent callers cannot both win."""
        stmt = (
            update(OrderRecord)
            .where(
                OrderRecord.sequence_id == sequence_id,
                OrderRecord.inventory_applied.is_(False),
            )
            .values(inventory_applied=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def delete_by_sequence_id(self, sequence_id: int) -> Optional[OrderRecord]:
        record = await self.get_by_sequence_id(sequence_id)
        if record is None:
            return None
        await self.session.delete(record)
        await self.session.flush()
        return record

    async def delete_all(self) -> List[OrderRecord]:
        """Delete every order in one statement; returns the removed rows."""
        stmt = delete(OrderRecord).returning(OrderRecord).execution_options(synchronize_session=False)
        result = await self.session.scalars(stmt)
        return list(result.all())
