"""Error Hierarchy — typed, categorized exceptions for all enrollment failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) are business-rule violations and are never retried
    - StorageFailureError is the only class eligible for automatic retry,
      and only when transient is True
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with AcademyError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    enrollment_id: str | None = None
    batch_id: str | None = None
    actor_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class AcademyError(Exception):
    """Base exception for all Academy errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "enrollment_id": self.context.enrollment_id,
                    "batch_id": self.context.batch_id,
                    "actor_id": self.context.actor_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (4xx) ─────────────────────────────────────────

class RequestValidationFailure(AcademyError):
    """Request is well-formed JSON but violates a boundary rule."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class CapacityExceededError(AcademyError):
    """Reservation attempted against a full batch."""
    def __init__(
        self, batch_id: str, max_students: int,
        context: ErrorContext | None = None,
        code: str = "CAPACITY_EXCEEDED",
    ):
        ctx = context or ErrorContext()
        ctx.batch_id = batch_id
        super().__init__(
            f"Batch '{batch_id}' is full ({max_students}/{max_students} seats taken)",
            code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.max_students = max_students


class NoSeatsAvailableError(CapacityExceededError):
    """Enrollment creation refused because the batch has no free seat."""
    def __init__(
        self, batch_id: str, max_students: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            batch_id, max_students, context, code="NO_SEATS_AVAILABLE",
        )


class InvalidStateError(AcademyError):
    """Operation attempted from a state that does not permit it."""
    def __init__(
        self, operation: str, current_state: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot {operation} while {current_state}",
            "INVALID_STATE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.operation = operation
        self.current_state = current_state


class NotPendingVerificationError(AcademyError):
    """Verification requested for a payment that is not awaiting review."""
    def __init__(self, payment_status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Payment is not pending verification (payment_status={payment_status})",
            "NOT_PENDING_VERIFICATION", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.payment_status = payment_status


class DuplicateEnrollmentError(AcademyError):
    """Student already holds a non-dropped enrollment in the batch."""
    def __init__(
        self, existing_id: str | None = None, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.enrollment_id = existing_id
        super().__init__(
            "Student is already enrolled in this batch",
            "DUPLICATE_ENROLLMENT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )


class IdempotencyKeyConflictError(AcademyError):
    """Idempotency key reused for a different verification request."""
    def __init__(self, key: str, context: ErrorContext | None = None):
        super().__init__(
            f"Idempotency key '{key}' was already used for a different request",
            "IDEMPOTENCY_KEY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.key = key


class ResourceNotFoundError(AcademyError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class ActorRequiredError(AcademyError):
    """No authenticated actor was supplied by the upstream gateway."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authenticated actor identity is required",
            "ACTOR_REQUIRED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 401,
        )


class ForbiddenActionError(AcademyError):
    """Actor is authenticated but not allowed to perform the operation."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Actor is not allowed to {operation}",
            "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.operation = operation


class ConcurrencyError(AcademyError):
    """Concurrent modification detected."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (5xx) ─────────────────────────────────

class StorageFailureError(AcademyError):
    """Database operation failed. Transient failures may be retried as a unit."""
    def __init__(
        self, message: str, operation: str, transient: bool = True,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Database {operation} failed: {message}",
            "STORAGE_FAILURE", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
        self.transient = transient
