"""
storefront.config.storage – S3-compatible object storage config.

Env vars: S3_ENDPOINT, S3_ACCESS_KEY, S3_SECRET_KEY, S3_BUCKET, S3_REGION,
         S3_SECURE, S3_PUBLIC_URL.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from storefront.config._env import as_bool, as_optional_str, pick

# S3 bucket naming rules (lowercase, digits, dots, hyphens; 3-63 chars)
_BUCKET_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9]$")


@dataclass(frozen=True)
class StorageConfig:
    endpoint: str
    access_key: str
    secret_key: str
    bucket: str = "storefront-media"
    region: Optional[str] = None
    secure: bool = False
    public_url: Optional[str] = None
    """Base URL for object links (e.g. a CDN). Defaults to <scheme>://<host>/<bucket>."""

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("S3_ENDPOINT must be a non-empty host[:port]")
        if not self.access_key or not self.secret_key:
            raise ValueError("S3_ACCESS_KEY and S3_SECRET_KEY are required")
        if not _BUCKET_PATTERN.match(self.bucket or ""):
            raise ValueError(f"S3_BUCKET is not a valid bucket name: {self.bucket!r}")
        if self.public_url and not self.public_url.startswith(("http://", "https://")):
            raise ValueError("S3_PUBLIC_URL must start with http:// or https://")

    @property
    def host(self) -> str:
        """Endpoint without scheme, as the minio client expects it."""
        return (self.endpoint or "").replace("https://", "").replace("http://", "").strip().rstrip("/")

    def object_url(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}/{self.bucket}/{key}"

    @classmethod
    def from_env(cls, **overrides: object) -> StorageConfig:
        endpoint = str(pick(overrides, "endpoint", "S3_ENDPOINT", "http://localhost:9000"))
        return cls(
            endpoint=endpoint,
            access_key=str(pick(overrides, "access_key", "S3_ACCESS_KEY", "minioadmin")),
            secret_key=str(pick(overrides, "secret_key", "S3_SECRET_KEY", "minioadmin")),
            bucket=str(pick(overrides, "bucket", "S3_BUCKET", "storefront-media")).strip(),
            region=as_optional_str(pick(overrides, "region", "S3_REGION")),
            # an https endpoint implies TLS unless S3_SECURE says otherwise
            secure=as_bool(pick(overrides, "secure", "S3_SECURE"), default=endpoint.startswith("https://")),
            public_url=as_optional_str(pick(overrides, "public_url", "S3_PUBLIC_URL")),
        )


def load_storage_config(**overrides: object) -> StorageConfig:
    return StorageConfig.from_env(**overrides)
