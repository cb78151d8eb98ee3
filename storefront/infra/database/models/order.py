"""Order ORM model.

One row per order; the ordered line items live in a JSONB column so the whole
aggregate is written in a single-row statement.
"""
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Index, Numeric, Sequence, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from storefront.infra.database.models.base import Base, TimestampMixin, _uuid_pk

# Source of human-facing order numbers. nextval() never repeats, even after deletes.
ORDER_SEQUENCE = Sequence("orders_sequence_id_seq", start=1, metadata=Base.metadata)


class OrderRecord(Base, TimestampMixin):
    """A customer order with its payment proof and line items."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_sequence_id", "sequence_id", unique=True),
        Index("ix_orders_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()

    # Human-facing order number (not the primary key)
    sequence_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(64), nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    # Free text: Pending | Delivered | Cancelled | operator-defined
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Pending")

    payment_proof_url: Mapped[str] = mapped_column(Text, nullable=False)
    payment_proof_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # [{"product_ref", "product_id", "name", "quantity", "unit_price", "image_url", "image_key"}]
    line_items: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    # Set once when stock/sold counters have been adjusted for delivery
    inventory_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
