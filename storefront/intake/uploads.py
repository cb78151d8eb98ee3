"""Blob uploads for one order submission, with a ledger for compensation.

Payment proofs are strict: any failure raises UploadError. Product images are
lenient: a failed upload leaves a None slot and an UploadFailure entry, and
the order goes ahead without that image.

A put that outlives its timeout keeps running in the background and may still
land. Such writes are tracked until they settle, then deleted unless the
stored order references them.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Dict, List, Optional, Sequence, Set, TypeVar

from storefront.core.exceptions import UploadError
from storefront.intake.types import ImageUpload, Order, StoredBlob, UploadFailure

if TYPE_CHECKING:
    from storefront.intake.ports import BaseBlobStore

logger = logging.getLogger(__name__)

PAYMENT_PREFIX = "payments"
PRODUCT_PREFIX = "products"

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

_T = TypeVar("_T")

# Strong references to cleanup tasks still running after their request returned
_background: Set["asyncio.Task[None]"] = set()


def _in_background(coro: Awaitable[None]) -> None:
    task = asyncio.ensure_future(coro)
    _background.add(task)
    task.add_done_callback(_background.discard)


def blob_name(prefix: str, image: ImageUpload, *, index: Optional[int] = None) -> str:
    """Unique key: <prefix>/<epoch-ms>[-<index>]-<random><ext>."""
    ext = Path(image.filename).suffix.lower() if image.filename else ""
    if not ext:
        ext = _EXTENSIONS.get(image.content_type, "")
    stamp = int(time.time() * 1000)
    token = uuid.uuid4().hex[:12]
    middle = f"{stamp}-{index}-{token}" if index is not None else f"{stamp}-{token}"
    return f"{prefix}/{middle}{ext}"


class UploadBatch:
    """Tracks every blob written for a submission so it can be undone."""

    def __init__(
        self,
        blob_store: "BaseBlobStore",
        *,
        submission_id: str,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._store = blob_store
        self._submission_id = submission_id
        self._timeout = timeout_seconds
        self._stored: List[StoredBlob] = []
        self._in_flight: Dict[str, "asyncio.Future[str]"] = {}
        self._deferred = False
        self.failures: List[UploadFailure] = []

    def _bounded(self, coro: Awaitable[_T]) -> Awaitable[_T]:
        if self._timeout is not None and self._timeout > 0:
            return asyncio.wait_for(coro, timeout=self._timeout)
        return coro

    async def _put(self, image: ImageUpload, name: str) -> StoredBlob:
        put = asyncio.ensure_future(self._store.put(image.data, name, image.content_type))
        try:
            url = await self._bounded(asyncio.shield(put))
        except BaseException:
            if not put.done():
                self._in_flight[name] = put
            raise
        blob = StoredBlob(key=name, url=url)
        self._stored.append(blob)
        return blob

    async def put_payment_proof(self, image: ImageUpload) -> StoredBlob:
        name = blob_name(PAYMENT_PREFIX, image)
        try:
            blob = await self._put(image, name)
        except asyncio.TimeoutError as exc:
            logger.error(
                "Upload: payment proof timed out after %.0fs submission=%s key=%s",
                self._timeout or 0, self._submission_id, name,
            )
            raise UploadError(
                "Payment proof upload timed out",
                details={"blob": "paymentImage", "cause": "timeout"},
                cause=exc,
            ) from exc
        except Exception as exc:
            logger.error(
                "Upload: payment proof failed submission=%s key=%s: %s",
                self._submission_id, name, exc,
            )
            raise UploadError(
                "Payment proof upload failed",
                details={"blob": "paymentImage", "cause": str(exc)},
                cause=exc,
            ) from exc
        logger.debug("Upload: payment proof stored submission=%s key=%s", self._submission_id, name)
        return blob

    async def put_product_images(self, images: Sequence[ImageUpload]) -> List[Optional[StoredBlob]]:
        """Upload all images concurrently; slot i is None when image i failed."""

        async def _one(index: int, image: ImageUpload) -> Optional[StoredBlob]:
            name = blob_name(PRODUCT_PREFIX, image, index=index)
            try:
                return await self._put(image, name)
            except asyncio.TimeoutError:
                reason = "timeout"
            except Exception as exc:
                reason = str(exc) or exc.__class__.__name__
            logger.warning(
                "Upload: product image %d failed submission=%s key=%s: %s",
                index, self._submission_id, name, reason,
            )
            self.failures.append(UploadFailure(index=index, reason=reason))
            return None

        slots = await asyncio.gather(*(_one(i, img) for i, img in enumerate(images)))
        self.failures.sort(key=lambda f: f.index)
        return list(slots)

    async def finish(self, order: Order) -> int:
        """Keep the blobs ``order`` references and delete every other blob of this batch.

        Returns how many stored blobs were deleted. Writes still in flight are
        deleted once they land.
        """
        keep = set(order.blob_keys())
        unreferenced = [b for b in self._stored if b.key not in keep]
        self._stored = [b for b in self._stored if b.key in keep]
        self._release_in_flight(reason="discard")
        await self._delete_quietly(unreferenced, reason="discard")
        return len(unreferenced)

    def settle_with(self, outcome: "asyncio.Future[Order]") -> None:
        """Let a write whose result is still unknown decide what happens to the blobs.

        compensate() does nothing from here on. Once ``outcome`` resolves, the
        batch is finished against the stored order, or compensated when the
        write failed.
        """
        self._deferred = True
        _in_background(self._settle(outcome))

    async def _settle(self, outcome: "asyncio.Future[Order]") -> None:
        await asyncio.wait({outcome})
        self._deferred = False
        if outcome.cancelled() or outcome.exception() is not None:
            logger.warning(
                "Upload: late order write failed, compensating submission=%s", self._submission_id
            )
            await self.compensate()
        else:
            await self.finish(outcome.result())

    async def compensate(self) -> int:
        """Delete everything stored so far. Returns how many deletes were issued.

        Writes still in flight are deleted once they land and not counted.
        """
        if self._deferred:
            return 0
        blobs, self._stored = self._stored, []
        if blobs or self._in_flight:
            logger.info(
                "Upload: compensating %d blob(s), %d in flight, submission=%s",
                len(blobs), len(self._in_flight), self._submission_id,
            )
        self._release_in_flight(reason="compensation")
        await self._delete_quietly(blobs, reason="compensation")
        return len(blobs)

    def _release_in_flight(self, *, reason: str) -> None:
        pending, self._in_flight = self._in_flight, {}
        for name, put in pending.items():
            _in_background(self._delete_when_landed(name, put, reason=reason))

    async def _delete_when_landed(self, name: str, put: "asyncio.Future[str]", *, reason: str) -> None:
        await asyncio.wait({put})
        if put.cancelled() or put.exception() is not None:
            return
        logger.info("Upload: deleting late blob submission=%s key=%s", self._submission_id, name)
        await self._delete_quietly([StoredBlob(key=name, url=put.result())], reason=reason)

    async def _delete_quietly(self, blobs: Sequence[StoredBlob], *, reason: str) -> None:
        async def _one(blob: StoredBlob) -> None:
            try:
                await self._bounded(self._store.delete(blob.key))
            except Exception as exc:
                logger.warning(
                    "Upload: %s delete failed submission=%s key=%s: %s",
                    reason, self._submission_id, blob.key, exc,
                )

        await asyncio.gather(*(_one(b) for b in blobs))
