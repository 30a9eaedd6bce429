"""Domain exception hierarchy for structured error responses.

Every error the engine raises maps to an HTTP status and a machine-readable
``code``. Routing, state and settlement errors abort the surrounding
transaction; notification errors are captured per channel by the dispatcher.
"""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class RateLimitException(AppException):
    code = "RATE_LIMITED"
    status_code = 429


# ---------------------------------------------------------------------------
# Order routing / lifecycle errors
# ---------------------------------------------------------------------------


class AlreadyRoutedException(ConflictException):
    """The order already has an owner, or a concurrent claim won first."""

    code = "ALREADY_ROUTED"


class TenantNotEligibleException(BusinessRuleException):
    """The tenant is not approved, or holds no open offer for the order."""

    code = "TENANT_NOT_ELIGIBLE"


class IllegalTransitionException(BusinessRuleException):
    code = "ILLEGAL_TRANSITION"


class NotOwnerException(ForbiddenException):
    code = "NOT_OWNER"


class ConcurrentModificationException(ConflictException):
    """Optimistic-concurrency conflict; re-read the order and try again."""

    code = "CONCURRENT_MODIFICATION"
    retryable = True


class SettlementFailureException(ConflictException):
    code = "SETTLEMENT_FAILURE"


class NotificationFailureException(AppException):
    """Raised by delivery providers; the dispatcher records it per channel."""

    code = "NOTIFICATION_FAILURE"
    status_code = 502
