"""
Project exception system.

Usage:
    from storefront.core.exceptions import ProjectError, ValidationError, exception_factory

    # Built-in types
    raise ValidationError("amount must be a number", details={"field": "amount"})

    # Order intake taxonomy
    raise MissingFieldError("Missing required fields", details={"fields": ["userId", "name"]})

    # Add new type on demand
    RefundError = exception_factory("RefundError", code="REFUND_ERROR", http_status=422)
"""
from storefront.core.exceptions.base import ProjectError, exception_factory
from storefront.core.exceptions.errors import (
    AllocationConflictError,
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    InvalidImageError,
    MalformedLineItemsError,
    MissingFieldError,
    NoValidLineItemsError,
    NotFoundError,
    OrderIntakeError,
    PaymentProofMissingError,
    PersistenceError,
    ResolutionError,
    UploadError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "exception_factory",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    "OrderIntakeError",
    "MissingFieldError",
    "PaymentProofMissingError",
    "InvalidImageError",
    "MalformedLineItemsError",
    "NoValidLineItemsError",
    "UploadError",
    "ResolutionError",
    "PersistenceError",
    "AllocationConflictError",
]
