"""Service layer: order intake and management, catalog CRUD."""
from storefront.services.order_service import OrderService
from storefront.services.product_service import ProductService

__all__ = [
    "OrderService",
    "ProductService",
]
