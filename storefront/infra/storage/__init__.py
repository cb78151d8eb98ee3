"""S3-compatible object storage for payment proofs and product images."""
from storefront.infra.storage.client import S3BlobStore

__all__ = ["S3BlobStore"]
