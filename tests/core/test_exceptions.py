"""Tests for custom exceptions in core.exceptions."""

from src.medmonitor.core.exceptions import (
    AccessDeniedError,
    AppException,
    AppointmentNotFoundError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    IdentityIncompleteError,
    InternalServerError,
    InvalidDateError,
    InvalidTransitionError,
    NotFoundError,
    PartialWriteFailureError,
    PolicyEvalError,
    SlotUnavailableError,
    StoreFailureError,
    UnauthenticatedError,
    UnauthorizedError,
)


def test_app_exception_to_dict():
    """Test the to_dict method serialization."""
    exc = AppException("Test message", "TEST_CODE", 400, {"key": "value"})
    data = exc.to_dict()
    assert data["error"]["code"] == "TEST_CODE"
    assert data["error"]["message"] == "Test message"
    assert data["error"]["details"]["key"] == "value"
    assert exc.status_code == 400

def test_http_error_instantiation():
    """Test standard HTTP exception instantiations."""
    assert BadRequestError().status_code == 400
    assert UnauthorizedError().status_code == 401
    assert ForbiddenError().status_code == 403

    not_found = NotFoundError(resource_type="user", resource_id=1)
    assert not_found.status_code == 404
    assert not_found.details["resource_type"] == "user"
    assert not_found.details["resource_id"] == 1

    assert ConflictError().status_code == 409
    assert InternalServerError().status_code == 500

def test_access_control_errors():
    """Gate outcomes map to 401 / 403 / 500."""
    unauthenticated = UnauthenticatedError()
    assert unauthenticated.status_code == 401
    assert unauthenticated.error_code == "UNAUTHENTICATED"

    incomplete = IdentityIncompleteError()
    assert incomplete.status_code == 401
    assert incomplete.message == "email not found in token"
    assert incomplete.details["claim"] == "email"

    denied = AccessDeniedError("patient", "/api/v1/users", "GET")
    assert denied.status_code == 403
    assert denied.message == "Forbidden: role 'patient' does not have access to /api/v1/users [GET]"

    store = StoreFailureError()
    assert store.status_code == 500
    assert store.message == "Failed to process user"

    policy = PolicyEvalError()
    assert policy.status_code == 500
    assert policy.error_code == "POLICY_EVAL_ERROR"
    assert policy.message == "Error occurred when authorizing user"

def test_appointment_errors():
    """Test lifecycle exception instantiations."""
    bad_date = InvalidDateError("tomorrow")
    assert bad_date.status_code == 400
    assert bad_date.details["value"] == "tomorrow"

    missing = AppointmentNotFoundError(7)
    assert missing.status_code == 404
    assert missing.details["resource_type"] == "appointment"
    assert missing.details["resource_id"] == 7

    transition = InvalidTransitionError(7, "Completed", "Cancelled")
    assert transition.status_code == 409
    assert transition.details == {"appointment_id": 7, "from": "Completed", "to": "Cancelled"}

    slot = SlotUnavailableError(3, "2025-03-10T09:00:00+00:00")
    assert slot.status_code == 409
    assert slot.error_code == "SLOT_UNAVAILABLE"

    partial = PartialWriteFailureError(details={"failed_step": "prescription[1]"})
    assert partial.status_code == 500
    assert partial.details["failed_step"] == "prescription[1]"
