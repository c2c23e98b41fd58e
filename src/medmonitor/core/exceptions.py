"""
Custom Exception Classes.

Provides a hierarchy of domain-specific exceptions that are automatically
converted to appropriate HTTP responses by the global exception handler.

Client-facing faults (4xx) carry enough context to diagnose the failure.
Server faults (5xx) carry a generic message; the underlying cause is logged
and only echoed back in ``details`` when DEBUG is on.
"""

from typing import Any


class AppException(Exception):
    """
    Base exception for all application-specific errors.

    All custom exceptions should inherit from this class.
    The global exception handler converts these to HTTP responses.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

# ============================================
# 4xx Client Errors
# ============================================

class BadRequestError(AppException):
    """Invalid request data or parameters (400)."""

    def __init__(
        self,
        message: str = "Invalid request",
        error_code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details,
        )

class UnauthorizedError(AppException):
    """Authentication required or failed (401)."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: str = "UNAUTHENTICATED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=401,
            details=details,
        )

class ForbiddenError(AppException):
    """Permission denied (403)."""

    def __init__(
        self,
        message: str = "Permission denied",
        error_code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=403,
            details=details,
        )

class NotFoundError(AppException):
    """Resource not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: str = "NOT_FOUND",
        resource_type: str | None = None,
        resource_id: str | int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id is not None:
            details["resource_id"] = resource_id
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            details=details,
        )

class ConflictError(AppException):
    """Resource conflict, e.g., duplicate entry (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            details=details,
        )

# ============================================
# 5xx Server Errors
# ============================================

class InternalServerError(AppException):
    """Internal server error (500)."""

    def __init__(
        self,
        message: str = "Internal server error",
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=500,
            details=details,
        )

# ============================================
# Access control
# ============================================

class UnauthenticatedError(UnauthorizedError):
    """Bearer credential missing, malformed, expired or rejected by the issuer."""


class IdentityIncompleteError(UnauthorizedError):
    """The issuer verified the token but a mandatory claim is absent."""

    def __init__(self, claim: str = "email") -> None:
        super().__init__(
            message=f"{claim} not found in token",
            error_code="IDENTITY_INCOMPLETE",
            details={"claim": claim},
        )


class AccessDeniedError(ForbiddenError):
    """No policy rule grants ``role`` the ``action`` on ``resource``."""

    def __init__(self, role: str, resource: str, action: str) -> None:
        super().__init__(
            message=f"Forbidden: role '{role}' does not have access to {resource} [{action}]",
            error_code="FORBIDDEN",
            details={"role": role, "resource": resource, "action": action},
        )


class StoreFailureError(InternalServerError):
    """Persistence layer failed while resolving or writing records."""

    def __init__(
        self,
        message: str = "Failed to process user",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="STORE_FAILURE",
            details=details,
        )


class PolicyEvalError(InternalServerError):
    """The policy mechanism itself errored (distinct from a clean deny)."""

    def __init__(
        self,
        message: str = "Error occurred when authorizing user",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="POLICY_EVAL_ERROR",
            details=details,
        )

# ============================================
# Appointment lifecycle
# ============================================

class InvalidDateError(BadRequestError):
    """Booking date matches none of the accepted layouts."""

    def __init__(self, value: str) -> None:
        super().__init__(
            message=f"Invalid appointment date: {value!r}",
            error_code="INVALID_DATE",
            details={"value": value},
        )


class AppointmentNotFoundError(NotFoundError):
    """Appointment resource not found."""

    def __init__(self, appointment_id: int) -> None:
        super().__init__(
            message=f"Appointment not found: {appointment_id}",
            error_code="APPOINTMENT_NOT_FOUND",
            resource_type="appointment",
            resource_id=appointment_id,
        )


class InvalidTransitionError(ConflictError):
    """Requested status change is not in the appointment transition table."""

    def __init__(self, appointment_id: int, current: str, target: str) -> None:
        super().__init__(
            message=f"Appointment {appointment_id} cannot move from {current} to {target}",
            error_code="INVALID_TRANSITION",
            details={"appointment_id": appointment_id, "from": current, "to": target},
        )


class SlotUnavailableError(ConflictError):
    """Doctor already has a Scheduled appointment at that instant."""

    def __init__(self, doctor_id: int, appointment_date: str) -> None:
        super().__init__(
            message=f"Doctor {doctor_id} is already booked at {appointment_date}",
            error_code="SLOT_UNAVAILABLE",
            details={"doctor_id": doctor_id, "appointment_date": appointment_date},
        )


class PartialWriteFailureError(InternalServerError):
    """A step of a compound write failed after an earlier step succeeded."""

    def __init__(
        self,
        message: str = "Operation failed and was rolled back",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="PARTIAL_WRITE_FAILURE",
            details=details,
        )
