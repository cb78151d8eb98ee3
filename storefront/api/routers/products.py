"""Products API: catalog CRUD. Product images are referenced by URL."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies import get_session
from storefront.api.schemas.products import (
    ProductCreateSchema,
    ProductResponseSchema,
    ProductUpdateSchema,
)
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductResponseSchema])
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    session: AsyncSession = Depends(get_session),
):
    """List products, newest first. ``search`` matches the name, case-insensitive."""
    items = await ProductService(session).list_products(
        category=category, search=search, skip=skip, limit=limit
    )
    return [ProductResponseSchema.model_validate(p) for p in items]


@router.get("/{product_id}", response_model=ProductResponseSchema)
async def get_product(product_id: UUID, session: AsyncSession = Depends(get_session)):
    product = await ProductService(session).get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponseSchema.model_validate(product)


@router.post("", response_model=ProductResponseSchema, status_code=201)
async def create_product(body: ProductCreateSchema, session: AsyncSession = Depends(get_session)):
    product = await ProductService(session).create_product(body.model_dump())
    return ProductResponseSchema.model_validate(product)


@router.patch("/{product_id}", response_model=ProductResponseSchema)
async def update_product(
    product_id: UUID,
    body: ProductUpdateSchema,
    session: AsyncSession = Depends(get_session),
):
    data = body.model_dump(exclude_unset=True)
    svc = ProductService(session)
    if not data:
        product = await svc.get_product(product_id)
    else:
        product = await svc.update_product(product_id, data)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductResponseSchema.model_validate(product)


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: UUID, session: AsyncSession = Depends(get_session)):
    ok = await ProductService(session).delete_product(product_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Product not found")
