"""
storefront.infra.database – PostgreSQL async engine, models, repositories and stores.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine, ensure_database_exists
  Base, OrderRecord, Product (models)
  OrderRepository, ProductRepository
  SqlOrderStore, SqlCatalog (order-intake ports)
"""
from storefront.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from storefront.infra.database.models import Base, OrderRecord, Product
from storefront.infra.database.repositories import (
    BaseRepository,
    OrderRepository,
    ProductRepository,
)
from storefront.infra.database.stores import SqlCatalog, SqlOrderStore

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_engine",
    "ensure_database_exists",
    "Base",
    "OrderRecord",
    "Product",
    "BaseRepository",
    "OrderRepository",
    "ProductRepository",
    "SqlOrderStore",
    "SqlCatalog",
]
