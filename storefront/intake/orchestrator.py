"""OrderIntakeOrchestrator: turn a raw submission into a persisted order.

Steps:
  1. required fields present            (MissingFieldError, no side effects)
  2. payment proof + image limits        (PaymentProofMissingError / InvalidImageError)
  3. payment proof upload                (strict: UploadError)
  4. product image uploads, concurrent   (lenient: failures recorded per position)
  5. parse + resolve line items          (MalformedLineItemsError / NoValidLineItemsError)
  6. images paired with entries by input position, before filtering
  7. sequence id allocation              (bounded retry on AllocationConflictError)
  8. insert                              (PersistenceError)
  9. return the order and the upload failure ledger

Any failure from step 3 on deletes every blob written so far before the error
propagates. Deleting is best-effort and never changes the error returned. An
insert that times out may still commit, so its blobs are kept or deleted only
once its real outcome is known.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, TypeVar

from storefront.config.intake import IntakeConfig
from storefront.core.exceptions import (
    AllocationConflictError,
    InvalidImageError,
    MissingFieldError,
    NoValidLineItemsError,
    PaymentProofMissingError,
    PersistenceError,
    ProjectError,
)
from storefront.intake.line_items import LineItemResolver, parse_line_items
from storefront.intake.types import (
    REQUIRED_FIELDS,
    ImageUpload,
    IntakeResult,
    LineItem,
    Order,
    OrderStatus,
    OrderSubmission,
    StoredBlob,
)
from storefront.intake.uploads import UploadBatch

if TYPE_CHECKING:
    from storefront.intake.ports import BaseBlobStore, BaseCatalog, BaseOrderStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderIntakeOrchestrator:
    """Drives one order submission through validation, uploads, resolution and persistence.

    Usage::

        intake = OrderIntakeOrchestrator(blob_store, catalog, order_store, config=cfg)
        result = await intake.submit_order(submission)
        result.order.sequence_id, result.upload_failures
    """

    def __init__(
        self,
        blob_store: "BaseBlobStore",
        catalog: "BaseCatalog",
        order_store: "BaseOrderStore",
        *,
        config: Optional[IntakeConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._blob_store = blob_store
        self._order_store = order_store
        self._config = config or IntakeConfig()
        self._clock = clock
        self._resolver = LineItemResolver(
            catalog, timeout_seconds=self._config.catalog_timeout_seconds
        )

    async def submit_order(self, submission: OrderSubmission) -> IntakeResult:
        sid = submission.submission_id
        self._validate(submission)

        uploads = UploadBatch(
            self._blob_store,
            submission_id=sid,
            timeout_seconds=self._config.upload_timeout_seconds,
        )

        step = "payment_proof"
        try:
            payment = await uploads.put_payment_proof(submission.payment_proof)

            step = "product_images"
            image_slots = await uploads.put_product_images(submission.product_images)

            step = "line_items"
            entries = parse_line_items(submission.raw_line_items or "")
            resolved = await self._resolver.resolve(entries, image_slots, submission_id=sid)
            line_items = [item for item in resolved if item is not None]
            if not line_items:
                raise NoValidLineItemsError(
                    "None of the submitted line items matched a catalog product",
                    details={"submitted": len(entries)},
                )

            step = "persist"
            order = await self._persist(submission, payment, line_items, uploads)
        except Exception as exc:
            if isinstance(exc, ProjectError) and exc.is_client_error:
                logger.info("Intake: rejected submission=%s step=%s: %s", sid, step, exc)
            else:
                logger.error("Intake: failed submission=%s step=%s: %s", sid, step, exc)
            await uploads.compensate()
            raise

        discarded = await uploads.finish(order)
        if discarded:
            logger.info(
                "Intake: discarded %d unattached product image(s) order=%d submission=%s",
                discarded, order.sequence_id, sid,
            )

        logger.info(
            "Intake: created order=%d items=%d image_failures=%d submission=%s",
            order.sequence_id, len(order.line_items), len(uploads.failures), sid,
        )
        return IntakeResult(order=order, upload_failures=list(uploads.failures))

    # ── Validation ──

    def _validate(self, submission: OrderSubmission) -> None:
        missing = [
            wire_name
            for attr, wire_name in REQUIRED_FIELDS.items()
            if not (getattr(submission, attr) or "").strip()
        ]
        if missing:
            raise MissingFieldError(
                f"Missing required fields: {', '.join(missing)}",
                details={"fields": missing},
            )

        if submission.payment_proof is None or not submission.payment_proof.data:
            raise PaymentProofMissingError("A payment proof image is required")
        self._check_image(submission.payment_proof, "paymentImage")

        limit = self._config.max_product_images
        if len(submission.product_images) > limit:
            raise InvalidImageError(
                f"At most {limit} product images are allowed",
                details={"field": "productImages", "count": len(submission.product_images)},
            )
        for index, image in enumerate(submission.product_images):
            self._check_image(image, "productImages", index)

    def _check_image(self, image: ImageUpload, field: str, index: Optional[int] = None) -> None:
        reason = None
        if image.content_type not in self._config.allowed_image_types:
            reason = f"unsupported type {image.content_type!r}"
        elif image.size == 0:
            reason = "empty file"
        elif image.size > self._config.max_image_bytes:
            reason = f"larger than {self._config.max_image_bytes} bytes"
        if reason is not None:
            label = field if index is None else f"{field}[{index}]"
            raise InvalidImageError(
                f"Invalid image {label}: {reason}",
                details={"field": field, "index": index, "reason": reason},
            )

    # ── Persistence ──

    def _bounded(self, coro: Awaitable[_T]) -> Awaitable[_T]:
        return asyncio.wait_for(coro, timeout=self._config.store_timeout_seconds)

    async def _persist(
        self,
        submission: OrderSubmission,
        payment: StoredBlob,
        line_items: List[LineItem],
        uploads: UploadBatch,
    ) -> Order:
        declared = submission.declared_amount or Decimal("0")
        total = declared if declared > 0 else sum((i.subtotal for i in line_items), Decimal("0"))
        status = (submission.requested_status or "").strip() or OrderStatus.PENDING.value

        attempts = self._config.allocation_attempts
        last_conflict: Optional[AllocationConflictError] = None
        for attempt in range(1, attempts + 1):
            sequence_id = await self._allocate()
            now = self._clock()
            order = Order(
                sequence_id=sequence_id,
                user_id=submission.user_id.strip(),
                customer_name=submission.customer_name.strip(),
                phone_number=submission.phone_number.strip(),
                delivery_address=submission.delivery_address.strip(),
                total_amount=total,
                status=status,
                payment_proof_url=payment.url,
                payment_proof_key=payment.key,
                line_items=line_items,
                created_at=now,
                updated_at=now,
            )
            insert = asyncio.ensure_future(self._order_store.insert(order))
            try:
                return await self._bounded(asyncio.shield(insert))
            except AllocationConflictError as exc:
                last_conflict = exc
                logger.warning(
                    "Intake: sequence id conflict attempt %d/%d submission=%s: %s",
                    attempt, attempts, submission.submission_id, exc,
                )
            except asyncio.CancelledError:
                uploads.settle_with(insert)
                raise
            except asyncio.TimeoutError as exc:
                # The insert keeps running and may still commit
                uploads.settle_with(insert)
                logger.warning(
                    "Intake: order=%d insert unconfirmed after %.0fs submission=%s",
                    sequence_id, self._config.store_timeout_seconds, submission.submission_id,
                )
                raise PersistenceError(
                    "Order store did not confirm the order in time",
                    details={"cause": "timeout", "sequence_id": sequence_id},
                    cause=exc,
                ) from exc
            except ProjectError:
                raise
            except Exception as exc:
                raise PersistenceError(
                    "Order could not be stored",
                    details={"cause": str(exc)},
                    cause=exc,
                ) from exc

        raise AllocationConflictError(
            f"Could not allocate an order number after {attempts} attempts",
            details={"attempts": attempts},
            cause=last_conflict,
        )

    async def _allocate(self) -> int:
        try:
            return await self._bounded(self._order_store.next_sequence_id())
        except asyncio.TimeoutError as exc:
            raise PersistenceError(
                "Order store did not respond in time",
                details={"cause": "timeout"},
                cause=exc,
            ) from exc
        except ProjectError:
            raise
        except Exception as exc:
            raise PersistenceError(
                "Could not allocate an order number",
                details={"cause": str(exc)},
                cause=exc,
            ) from exc
