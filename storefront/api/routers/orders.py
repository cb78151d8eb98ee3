"""Orders API: submit (multipart), list, get, update, delete."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.datastructures import UploadFile

from storefront.api.dependencies import get_order_service
from storefront.api.rate_limit import ORDER_RATE_LIMIT, limiter
from storefront.api.schemas.orders import (
    DeleteAllResponse,
    LineItemResponse,
    OrderCreatedResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdateRequest,
    UploadFailureResponse,
)
from storefront.core.exceptions import ValidationError
from storefront.intake.types import ImageUpload, Order, OrderStatus, OrderSubmission
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

# Multipart field name → OrderSubmission attribute
_TEXT_FIELDS = {
    "userId": "user_id",
    "name": "customer_name",
    "phoneNumber": "phone_number",
    "deliveryAddress": "delivery_address",
    "orderDetails": "raw_line_items",
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def _parse_amount(raw: Optional[str]) -> Decimal:
    text = (raw or "").strip()
    if not text:
        return Decimal("0")
    try:
        value = Decimal(text)
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        raise ValidationError("amount must be a number", details={"field": "amount"})
    return value


async def _to_image(upload: UploadFile) -> Optional[ImageUpload]:
    data = await upload.read()
    if not data and not upload.filename:
        # Browsers send an empty part for an unselected file input
        return None
    return ImageUpload(data=data, content_type=(upload.content_type or "").lower(), filename=upload.filename)


async def submission_from_form(request: Request) -> OrderSubmission:
    """Build an OrderSubmission from the multipart body. Field names are trimmed."""
    form = await request.form()
    texts: Dict[str, str] = {}
    files: Dict[str, List[UploadFile]] = {}
    for raw_key, value in form.multi_items():
        key = raw_key.strip()
        if key.endswith("[]"):
            key = key[:-2]
        if isinstance(value, UploadFile):
            files.setdefault(key, []).append(value)
        else:
            texts.setdefault(key, value)

    submission = OrderSubmission(
        declared_amount=_parse_amount(texts.get("amount")),
        requested_status=(texts.get("status") or "").strip() or OrderStatus.PENDING.value,
    )
    for wire_name, attr in _TEXT_FIELDS.items():
        setattr(submission, attr, texts.get(wire_name))

    payment = files.get("paymentImage") or []
    if payment:
        submission.payment_proof = await _to_image(payment[0])
    for upload in files.get("productImages", []):
        image = await _to_image(upload)
        if image is not None:
            submission.product_images.append(image)
    return submission


def _to_schema(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        sequence_id=order.sequence_id,
        user_id=order.user_id,
        customer_name=order.customer_name,
        phone_number=order.phone_number,
        delivery_address=order.delivery_address,
        total_amount=float(order.total_amount),
        status=order.status,
        payment_proof_url=order.payment_proof_url,
        line_items=[
            LineItemResponse(
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=float(item.unit_price),
                subtotal=float(item.subtotal),
                image_url=item.image_url,
            )
            for item in order.line_items
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.post("", response_model=OrderCreatedResponse, status_code=201)
@limiter.limit(ORDER_RATE_LIMIT)
async def create_order(
    request: Request,
    service: OrderService = Depends(get_order_service),
):
    """Create an order from multipart fields, a payment proof and optional product images."""
    submission = await submission_from_form(request)
    logger.debug(
        "API: order submission=%s product_images=%d",
        submission.submission_id, len(submission.product_images),
    )
    result = await service.submit(submission)
    return OrderCreatedResponse(
        order=_to_schema(result.order),
        upload_failures=[
            UploadFailureResponse(index=f.index, reason=f.reason) for f in result.upload_failures
        ],
    )


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    service: OrderService = Depends(get_order_service),
):
    """List orders, newest first, optionally filtered by status."""
    items = await service.list_orders(status=status, skip=max(skip, 0), limit=min(max(limit, 1), 500))
    return [_to_schema(o) for o in items]


@router.get("/{sequence_id}", response_model=OrderResponse)
async def get_order(
    sequence_id: int,
    service: OrderService = Depends(get_order_service),
):
    order = await service.get_order(sequence_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _to_schema(order)


@router.get("/{sequence_id}/{user_id}", response_model=OrderResponse)
async def get_order_for_user(
    sequence_id: int,
    user_id: str,
    service: OrderService = Depends(get_order_service),
):
    """An order, only if it belongs to ``user_id``."""
    order = await service.get_for_user(sequence_id, user_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _to_schema(order)


@router.patch("/{sequence_id}", response_model=OrderResponse)
async def update_order_status(
    sequence_id: int,
    body: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service),
):
    """Set the status. Moving to Delivered adjusts stock and sold counts once."""
    order = await service.update_status(sequence_id, body.status)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _to_schema(order)


@router.put("/{sequence_id}", response_model=OrderResponse)
async def update_order(
    sequence_id: int,
    body: OrderUpdateRequest,
    service: OrderService = Depends(get_order_service),
):
    update_data: Dict[str, Any] = {}
    for field_name in ("status", "customer_name", "phone_number", "delivery_address"):
        val = getattr(body, field_name)
        if val is not None:
            update_data[field_name] = val
    if body.total_amount is not None:
        update_data["total_amount"] = Decimal(str(body.total_amount))

    order = await service.update_order(sequence_id, update_data)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _to_schema(order)


@router.delete("/{sequence_id}", status_code=204)
async def delete_order(
    sequence_id: int,
    service: OrderService = Depends(get_order_service),
):
    removed = await service.delete_order(sequence_id)
    if removed is None:
        raise HTTPException(status_code=404, detail="Order not found")


@router.delete("", response_model=DeleteAllResponse)
async def delete_all_orders(service: OrderService = Depends(get_order_service)):
    """Delete every order and its stored images."""
    deleted = await service.delete_all()
    return DeleteAllResponse(deleted=deleted)
