"""Line-item parsing and catalog resolution.

Entries arrive as a JSON array of objects:
``{"productId": "...", "product": "<name>", "quantity": 2, "price": 500}``.
Resolution tries the catalog id first, then the display name. Client-declared
quantity/price win when present and non-zero; otherwise quantity defaults to 1
and price comes from the catalog.
"""
from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Awaitable, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from storefront.core.exceptions import MalformedLineItemsError, ProjectError, ResolutionError
from storefront.intake.types import LineItem, ProductSummary, StoredBlob

if TYPE_CHECKING:
    from storefront.intake.ports import BaseCatalog

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class LineItemEntry(BaseModel):
    """One client-submitted entry, before catalog resolution."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: Optional[str] = Field(default=None, alias="productId")
    product: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator("product_id", "product", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            return v.strip() or None
        return v

    @property
    def ref(self) -> Optional[str]:
        return self.product_id or self.product


def parse_line_items(raw: str) -> List[LineItemEntry]:
    """Parse the JSON text. Raises MalformedLineItemsError with position detail."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedLineItemsError(
            f"orderDetails is not valid JSON: {exc.msg}",
            details={"position": exc.pos, "line": exc.lineno, "column": exc.colno},
            cause=exc,
        ) from exc

    if not isinstance(data, list):
        raise MalformedLineItemsError(
            "orderDetails must be a JSON array",
            details={"type": type(data).__name__},
        )

    entries: List[LineItemEntry] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedLineItemsError(
                f"orderDetails[{index}] must be an object",
                details={"index": index},
            )
        try:
            entries.append(LineItemEntry.model_validate(item))
        except PydanticValidationError as exc:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]
            raise MalformedLineItemsError(
                f"orderDetails[{index}] is invalid",
                details={"index": index, "errors": errors},
                cause=exc,
            ) from exc
    return entries


class LineItemResolver:
    """Turn parsed entries into LineItems, keeping input positions."""

    def __init__(self, catalog: "BaseCatalog", *, timeout_seconds: Optional[float] = None) -> None:
        self._catalog = catalog
        self._timeout = timeout_seconds

    async def resolve(
        self,
        entries: Sequence[LineItemEntry],
        image_slots: Sequence[Optional[StoredBlob]],
        *,
        submission_id: str = "-",
    ) -> List[Optional[LineItem]]:
        """Result[i] belongs to entries[i]; None marks an entry with no catalog match.

        Image i goes with entry i. The pairing is made here, before unresolved
        entries are filtered out, so a dropped entry never shifts images onto
        its neighbours.
        """
        lookups = [asyncio.ensure_future(self._lookup(e)) for e in entries]
        try:
            products = await asyncio.gather(*lookups)
        except BaseException:
            # One failed lookup fails the order; stop the rest before raising
            for lookup in lookups:
                lookup.cancel()
            await asyncio.gather(*lookups, return_exceptions=True)
            raise
        items: List[Optional[LineItem]] = []
        for index, (entry, product) in enumerate(zip(entries, products)):
            if product is None:
                logger.warning(
                    "LineItems: entry %d (%r) matched no catalog product, dropping submission=%s",
                    index, entry.ref, submission_id,
                )
                items.append(None)
                continue
            items.append(self._build(entry, product, index, image_slots))
        return items

    def _bounded(self, coro: Awaitable[_T]) -> Awaitable[_T]:
        if self._timeout is not None and self._timeout > 0:
            return asyncio.wait_for(coro, timeout=self._timeout)
        return coro

    async def _lookup(self, entry: LineItemEntry) -> Optional[ProductSummary]:
        ref = entry.ref
        try:
            product = None
            if entry.product_id:
                product = await self._bounded(self._catalog.find_by_id(entry.product_id))
            if product is None and entry.product:
                product = await self._bounded(self._catalog.find_by_name(entry.product))
            return product
        except asyncio.TimeoutError as exc:
            raise ResolutionError(
                f"Catalog lookup timed out for {ref!r}",
                details={"product_ref": ref, "cause": "timeout"},
                cause=exc,
            ) from exc
        except ProjectError:
            raise
        except Exception as exc:
            raise ResolutionError(
                f"Catalog lookup failed for {ref!r}",
                details={"product_ref": ref, "cause": str(exc)},
                cause=exc,
            ) from exc

    @staticmethod
    def _build(
        entry: LineItemEntry,
        product: ProductSummary,
        index: int,
        image_slots: Sequence[Optional[StoredBlob]],
    ) -> LineItem:
        if index < len(image_slots):
            # An image was attached for this position: use it, or null if its upload failed
            blob = image_slots[index]
            image_url = blob.url if blob else None
            image_key = blob.key if blob else None
        else:
            image_url, image_key = product.default_image_url, None

        return LineItem(
            product_ref=entry.ref or product.id,
            product_id=product.id,
            name=product.name,
            quantity=entry.quantity or 1,
            unit_price=entry.price if entry.price else (product.price or Decimal("0")),
            image_url=image_url,
            image_key=image_key,
        )
