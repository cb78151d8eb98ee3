"""Pydantic schemas for the products (catalog) API."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProductCreateSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0)
    short_description: str = ""
    full_description: str = ""
    category: Optional[str] = Field(None, max_length=128)
    stock_quantity: int = Field(0, ge=0)
    sold: int = Field(0, ge=0)
    discount: float = Field(0, ge=0, le=100, description="Percentage off the list price")
    has_discount: Optional[bool] = None
    image_urls: List[str] = Field(default_factory=list, description="First entry is the default image")


class ProductUpdateSchema(BaseModel):
    """Partial update for a product."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0)
    short_description: Optional[str] = None
    full_description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=128)
    stock_quantity: Optional[int] = None
    sold: Optional[int] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0, le=100)
    has_discount: Optional[bool] = None
    image_urls: Optional[List[str]] = None


class ProductResponseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    price: float
    short_description: str
    full_description: str
    category: Optional[str] = None
    stock_quantity: int
    sold: int
    discount: float
    has_discount: bool
    image_urls: List[str]
    created_at: datetime
    updated_at: datetime
