"""
Built-in exception types. Add new ones here or via exception_factory().
"""
from __future__ import annotations

from storefront.core.exceptions.base import ProjectError, exception_factory


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Request or input validation failed."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Requested resource not found."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class ConflictError(ProjectError):
    """Resource state conflict (e.g. duplicate name)."""

    default_code = "CONFLICT"
    default_http_status = 409


class ExternalServiceError(ProjectError):
    """External service (object storage, DB) failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502


# ── Order intake ──────────────────────────────────────────────────────────────


class OrderIntakeError(ProjectError):
    """Base for every failure of the order-creation workflow."""

    default_code = "ORDER_INTAKE_ERROR"
    default_http_status = 500


class MissingFieldError(OrderIntakeError):
    """One or more required submission fields are absent. details["fields"] lists all of them."""

    default_code = "MISSING_FIELD"
    default_http_status = 400


class PaymentProofMissingError(OrderIntakeError):
    """No payment-proof image attached."""

    default_code = "PAYMENT_PROOF_MISSING"
    default_http_status = 400


class InvalidImageError(OrderIntakeError):
    """An attached image breaks the upload restrictions (count, type, size)."""

    default_code = "INVALID_IMAGE"
    default_http_status = 400


class MalformedLineItemsError(OrderIntakeError):
    """The line-item text is not a JSON array of valid entries."""

    default_code = "MALFORMED_LINE_ITEMS"
    default_http_status = 400


class NoValidLineItemsError(OrderIntakeError):
    """No submitted line item resolved to a catalog product."""

    default_code = "NO_VALID_LINE_ITEMS"
    default_http_status = 400


class UploadError(OrderIntakeError):
    """Writing a blob to object storage failed or timed out."""

    default_code = "UPLOAD_ERROR"
    default_http_status = 500


class PersistenceError(OrderIntakeError):
    """The order document could not be stored."""

    default_code = "PERSISTENCE_ERROR"
    default_http_status = 500


class AllocationConflictError(OrderIntakeError):
    """Two writers claimed the same sequence id. Retryable."""

    default_code = "ALLOCATION_CONFLICT"
    default_http_status = 503


ResolutionError = exception_factory(
    "ResolutionError",
    code="RESOLUTION_ERROR",
    http_status=502,
    base=OrderIntakeError,
    doc="Catalog lookup failed or timed out.",
)
