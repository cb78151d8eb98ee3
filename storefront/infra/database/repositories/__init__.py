"""Repositories for the storefront database."""
from storefront.infra.database.repositories.base import BaseRepository
from storefront.infra.database.repositories.order import OrderRepository
from storefront.infra.database.repositories.product import ProductRepository

__all__ = [
    "BaseRepository",
    "OrderRepository",
    "ProductRepository",
]
