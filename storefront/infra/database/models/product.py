"""Product (catalog) ORM model."""
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from storefront.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Product(Base, TimestampMixin):
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_name", "name"),
        Index("ix_products_category", "category"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    short_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    full_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    discount: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    has_discount: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Public image URLs; the first one is the default image shown for the product
    image_urls: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    @property
    def default_image_url(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None
