"""Pydantic schemas for the orders API.

Storage keys of blobs stay server-side; responses carry only public URLs.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LineItemResponse(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: float
    subtotal: float
    image_url: Optional[str] = None


class OrderResponse(BaseModel):
    id: Optional[str] = None
    sequence_id: int
    user_id: str
    customer_name: str
    phone_number: str
    delivery_address: str
    total_amount: float
    status: str
    payment_proof_url: str
    line_items: List[LineItemResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UploadFailureResponse(BaseModel):
    """A product image that was not stored; its line item has no image."""

    index: int
    reason: str


class OrderCreatedResponse(BaseModel):
    order: OrderResponse
    upload_failures: List[UploadFailureResponse] = []


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=32)


class OrderUpdateRequest(BaseModel):
    status: Optional[str] = Field(None, min_length=1, max_length=32)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone_number: Optional[str] = Field(None, min_length=1, max_length=64)
    delivery_address: Optional[str] = Field(None, min_length=1)
    total_amount: Optional[float] = Field(None, ge=0)


class DeleteAllResponse(BaseModel):
    deleted: int
