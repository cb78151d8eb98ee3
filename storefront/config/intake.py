"""
storefront.config.intake – limits and timeouts for the order-creation workflow.

Env vars: ORDER_UPLOAD_TIMEOUT, ORDER_CATALOG_TIMEOUT, ORDER_STORE_TIMEOUT,
         ORDER_MAX_PRODUCT_IMAGES, ORDER_MAX_IMAGE_BYTES,
         ORDER_ALLOWED_IMAGE_TYPES, ORDER_ALLOCATION_ATTEMPTS.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

from storefront.config._env import as_float, as_int, pick

_DEFAULT_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})


@dataclass(frozen=True)
class IntakeConfig:
    upload_timeout_seconds: float = 30.0
    """Upper bound for a single blob write. Expiry is an UploadError."""

    catalog_timeout_seconds: float = 10.0
    """Upper bound for one catalog lookup. Expiry is a ResolutionError."""

    store_timeout_seconds: float = 10.0
    """Upper bound for sequence allocation and the order insert."""

    max_product_images: int = 10
    max_image_bytes: int = 10 * 1024 * 1024
    allowed_image_types: FrozenSet[str] = field(default_factory=lambda: _DEFAULT_IMAGE_TYPES)

    allocation_attempts: int = 3
    """Insert attempts when the sequence id collides with an existing order."""

    def __post_init__(self) -> None:
        for name in ("upload_timeout_seconds", "catalog_timeout_seconds", "store_timeout_seconds"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")
        if not isinstance(self.max_product_images, int) or self.max_product_images < 0:
            raise ValueError(f"max_product_images must be >= 0, got {self.max_product_images!r}")
        if not isinstance(self.max_image_bytes, int) or self.max_image_bytes < 1:
            raise ValueError(f"max_image_bytes must be >= 1, got {self.max_image_bytes!r}")
        if not self.allowed_image_types:
            raise ValueError("allowed_image_types must not be empty")
        if not isinstance(self.allocation_attempts, int) or self.allocation_attempts < 1:
            raise ValueError(f"allocation_attempts must be >= 1, got {self.allocation_attempts!r}")

    @classmethod
    def from_env(cls, **overrides: object) -> IntakeConfig:
        def _float(attr: str, var: str, default: float) -> float:
            return as_float(pick(overrides, attr, var, default), var)

        def _int(attr: str, var: str, default: int) -> int:
            return as_int(pick(overrides, attr, var, default), var)

        raw_types = pick(overrides, "allowed_image_types", "ORDER_ALLOWED_IMAGE_TYPES", "")
        if isinstance(raw_types, str):
            raw_types = [t.strip().lower() for t in raw_types.split(",") if t.strip()]

        return cls(
            upload_timeout_seconds=_float("upload_timeout_seconds", "ORDER_UPLOAD_TIMEOUT", 30.0),
            catalog_timeout_seconds=_float("catalog_timeout_seconds", "ORDER_CATALOG_TIMEOUT", 10.0),
            store_timeout_seconds=_float("store_timeout_seconds", "ORDER_STORE_TIMEOUT", 10.0),
            max_product_images=_int("max_product_images", "ORDER_MAX_PRODUCT_IMAGES", 10),
            max_image_bytes=_int("max_image_bytes", "ORDER_MAX_IMAGE_BYTES", 10 * 1024 * 1024),
            allowed_image_types=frozenset(raw_types or _DEFAULT_IMAGE_TYPES),
            allocation_attempts=_int("allocation_attempts", "ORDER_ALLOCATION_ATTEMPTS", 3),
        )


def load_intake_config(**overrides: object) -> IntakeConfig:
    return IntakeConfig.from_env(**overrides)
