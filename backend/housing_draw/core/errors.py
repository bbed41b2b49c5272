"""Error Hierarchy — typed, categorized exceptions for housing draw failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Invariant violations are NOT raised to callers: they come back as failed
      OperationResults. MembershipRejectedError only unwinds a unit of work.
    - ResourceNotFoundError is the one raised domain fault (reading a gone row)
    - to_response() produces a REST-shaped envelope for whatever surface hosts the engine
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
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    draw_id: str | None = None
    group_id: str | None = None
    membership_id: str | None = None
    user_id: str | None = None
    debug_info: dict[str, Any] | None = None


class HousingDrawError(Exception):
    """Base exception for all housing draw errors."""

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
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "draw_id": self.context.draw_id,
                    "group_id": self.context.group_id,
                    "membership_id": self.context.membership_id,
                    "user_id": self.context.user_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class MembershipRejectedError(HousingDrawError):
    """A write inside a unit of work failed validation; the whole unit rolls back."""
    def __init__(self, errors: list[str] | tuple[str, ...], context: ErrorContext | None = None):
        super().__init__(
            "; ".join(errors), "MEMBERSHIP_REJECTED", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 422,
        )
        self.errors = list(errors)


class ResourceNotFoundError(HousingDrawError):
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
        self.resource_id = resource_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(HousingDrawError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ConcurrencyError(HousingDrawError):
    """Concurrent modification detected; the operation may be retried."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
