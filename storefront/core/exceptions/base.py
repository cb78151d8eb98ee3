"""
ProjectError and the factory for ad-hoc subclasses.

Every deliberate failure in storefront is a ProjectError. A subclass only
declares ``default_code`` and ``default_http_status``; the API layer turns
those into the JSON error envelope, and the logger gets the full picture
from to_dict().
"""
from __future__ import annotations

import traceback
from typing import Any, Optional, Type


class ProjectError(Exception):
    """
    Root of the storefront exception tree.

    ``code`` and ``http_status`` fall back to the class defaults when not
    passed. ``details`` is structured context that clients may see (for
    example the missing field names); ``cause`` is the underlying exception
    and only ever reaches the logs.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        cls = type(self)
        self.message = message
        self.code = code or cls.default_code
        self.http_status = http_status or cls.default_http_status
        self.details: dict[str, Any] = dict(details) if details else {}
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, http_status={self.http_status})"

    @property
    def is_client_error(self) -> bool:
        """True for 4xx errors, whose message and details are safe to return as-is."""
        return self.http_status < 500

    def to_dict(self) -> dict[str, Any]:
        """Log payload: code, status, message, details and the formatted cause."""
        payload: dict[str, Any] = {
            "code": self.code,
            "http_status": self.http_status,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        if self.cause is not None:
            payload["cause"] = repr(self.cause)
            payload["cause_traceback"] = "".join(traceback.format_exception(self.cause))
        return payload


def exception_factory(
    name: str,
    *,
    code: Optional[str] = None,
    http_status: int = 500,
    base: Type[ProjectError] = ProjectError,
    doc: Optional[str] = None,
) -> Type[ProjectError]:
    """
    Build a ProjectError subclass at runtime.

    >>> RefundError = exception_factory("RefundError", code="REFUND_ERROR", http_status=422)
    >>> RefundError("Refund window closed").http_status
    422
    """
    namespace: dict[str, Any] = {
        "default_code": code or name.upper(),
        "default_http_status": http_status,
        "__doc__": doc,
        "__module__": base.__module__,
    }
    return type(name, (base,), namespace)
