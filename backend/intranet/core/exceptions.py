"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Any, Dict, Optional


class IntranetException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(IntranetException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class ConflictError(IntranetException):
    """Raised when a request conflicts with current state."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class BadRequestError(IntranetException):
    """Raised when request is invalid."""

    def __init__(self, message: str = "bad_request", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BAD_REQUEST", details=details, status_code=400)


class RateLimitExceeded(IntranetException):
    """Raised when a client exceeds rate limits."""

    def __init__(self, *, retry_after: int, limit: int, window_seconds: int):
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Window": str(window_seconds),
        }
        super().__init__(
            "rate_limit_exceeded",
            error_code="RATE_LIMIT",
            details={"retry_after": retry_after, "limit": limit, "window_seconds": window_seconds},
            status_code=429,
            headers=headers,
        )


# ===== CONCURRENCY / STATE EXCEPTIONS =====


class VersionConflictError(ConflictError):
    """Raised when an update carries a stale version number."""

    def __init__(self, resource: str, *, expected: int, current: int):
        super().__init__(
            f"{resource}_version_conflict",
            details={"expected_version": expected, "current_version": current},
        )
        self.error_code = "VERSION_CONFLICT"
        self.current_version = current


class HierarchyCycleError(ConflictError):
    """Raised when a department edge would introduce a cycle."""

    def __init__(self, parent_id: str, child_id: str):
        super().__init__(
            "department_hierarchy_cycle",
            details={"parent_department_id": parent_id, "child_department_id": child_id},
        )
        self.error_code = "HIERARCHY_CYCLE"


class PageLockedError(ConflictError):
    """Raised when a page under review is edited."""

    def __init__(self, page_id: str):
        super().__init__("page_locked_for_review", details={"page_id": page_id})
        self.error_code = "PAGE_LOCKED"


class InvalidTransitionError(BadRequestError):
    """Raised for a workflow transition that is not allowed."""

    def __init__(self, current: str, target: str):
        super().__init__("invalid_status_transition", details={"from": current, "to": target})
        self.error_code = "INVALID_TRANSITION"


# ===== VALIDATION EXCEPTIONS =====


class ValidationException(IntranetException):
    """Base exception for validation errors."""


class InvalidFormSubmissionError(ValidationException):
    """Raised when custom field values fail their field definitions."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__(
            "invalid_custom_fields",
            error_code="INVALID_FORM_SUBMISSION",
            details={"errors": errors},
            status_code=422,
        )
        self.errors = errors


class InvalidConfigurationError(ValidationException):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, error_code="INVALID_CONFIG", details=details, status_code=500)


# ===== INTEGRATION EXCEPTIONS =====


class EmbeddingProviderError(IntranetException):
    """Raised when the embeddings API fails or returns an unusable payload."""

    def __init__(self, message: str = "embedding_request_failed", *, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, error_code="EMBEDDING_PROVIDER_ERROR", details=details, status_code=502)


class WebhookDeliveryError(IntranetException):
    """Raised when a webhook cannot be delivered after all attempts."""

    def __init__(self, url: str, attempts: int, *, last_status: Optional[int] = None):
        details: Dict[str, Any] = {"url": url, "attempts": attempts}
        if last_status is not None:
            details["last_status"] = last_status
        super().__init__("webhook_delivery_failed", error_code="WEBHOOK_DELIVERY_ERROR", details=details, status_code=502)


# ===== AUTHENTICATION/AUTHORIZATION EXCEPTIONS =====


class AuthenticationException(IntranetException):
    """Base exception for authentication errors."""


class ExpiredTokenError(AuthenticationException):
    """Raised when token has expired."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, error_code="EXPIRED_TOKEN", status_code=401)


class InsufficientPermissionsError(AuthenticationException):
    """Raised when user lacks required permissions."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, error_code="INSUFFICIENT_PERMISSIONS", status_code=403)
