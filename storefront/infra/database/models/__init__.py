"""
storefront.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from storefront.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from storefront.infra.database.models.order import ORDER_SEQUENCE, OrderRecord
from storefront.infra.database.models.product import Product

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "ORDER_SEQUENCE",
    "OrderRecord",
    "Product",
]
