"""Core data structures for order intake."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class OrderStatus(str, Enum):
    """Well-known statuses. Orders store status as free text; operators may add others."""
    PENDING = "Pending"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


REQUIRED_FIELDS = {
    "user_id": "userId",
    "customer_name": "name",
    "phone_number": "phoneNumber",
    "delivery_address": "deliveryAddress",
    "raw_line_items": "orderDetails",
}
"""Submission attribute → multipart field name reported back to the client."""


@dataclass
class ImageUpload:
    """One attached file: raw bytes plus what the client said it is."""

    data: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class OrderSubmission:
    """Raw order request, constructed per request by the API layer."""

    user_id: Optional[str] = None
    customer_name: Optional[str] = None
    phone_number: Optional[str] = None
    delivery_address: Optional[str] = None
    raw_line_items: Optional[str] = None
    declared_amount: Decimal = Decimal("0")
    requested_status: str = OrderStatus.PENDING.value
    payment_proof: Optional[ImageUpload] = None
    product_images: List[ImageUpload] = field(default_factory=list)
    submission_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


@dataclass
class StoredBlob:
    key: str
    url: str


@dataclass
class UploadFailure:
    """A product image that could not be stored; its line item keeps a null image."""

    index: int
    reason: str


@dataclass
class ProductSummary:
    """The catalog attributes order intake needs."""

    id: str
    name: str
    price: Decimal = Decimal("0")
    default_image_url: Optional[str] = None
    current_stock: int = 0
    current_sold: int = 0


@dataclass
class LineItem:
    product_ref: str
    """What the client sent: the catalog id, or the display name used as fallback key."""

    product_id: str
    name: str
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    image_url: Optional[str] = None
    image_key: Optional[str] = None
    """Storage key of an uploaded image (None for catalog images). Never exposed."""

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be >= 0, got {self.unit_price}")

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass
class Order:
    """The persisted order aggregate."""

    sequence_id: int
    user_id: str
    customer_name: str
    phone_number: str
    delivery_address: str
    total_amount: Decimal
    status: str
    payment_proof_url: str
    line_items: List[LineItem]
    payment_proof_key: Optional[str] = None
    inventory_applied: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[str] = None
    """Storage-assigned identifier, distinct from sequence_id."""

    @property
    def is_delivered(self) -> bool:
        return self.status == OrderStatus.DELIVERED.value

    def blob_keys(self) -> List[str]:
        keys = [self.payment_proof_key] if self.payment_proof_key else []
        keys.extend(item.image_key for item in self.line_items if item.image_key)
        return keys


@dataclass
class DeliveryAdjustment:
    """Outcome of moving stock for a delivered order."""

    applied: bool
    """False when an earlier call already adjusted this order (or the order is gone)."""

    missing_products: List[str] = field(default_factory=list)
    """Line-item product ids with no catalog row left; their stock was not touched."""


@dataclass
class IntakeResult:
    order: Order
    upload_failures: List[UploadFailure] = field(default_factory=list)
