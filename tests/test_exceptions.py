"""
Tests for domain error codes, statuses and messages.
"""

import pytest

from leadflow.exceptions import (
    InsufficientCallAttempts,
    InvalidTransition,
    LeadflowError,
    MissingMCNumber,
    NoActivePolicy,
    NotFoundError,
    PreconditionFailed,
    ValidationError,
)


def test_to_dict_shape():
    error = ValidationError("Invalid month", details={"field": "month"})
    assert error.to_dict() == {
        "error": "VALIDATION_ERROR",
        "message": "Invalid month",
        "details": {"field": "month"},
    }


def test_code_override():
    error = LeadflowError("boom", code="CUSTOM")
    assert error.code == "CUSTOM"
    assert error.details == {}


@pytest.mark.parametrize(
    "error, status",
    [
        (ValidationError("x"), 400),
        (NotFoundError("lead", 1), 404),
        (InsufficientCallAttempts(0, 3), 412),
        (MissingMCNumber(None), 412),
        (InvalidTransition("Lost", "New"), 409),
        (NoActivePolicy(1, "sales"), 409),
    ],
)
def test_status_codes(error, status):
    assert error.status_code == status


def test_guards_are_preconditions():
    assert isinstance(InsufficientCallAttempts(0, 3), PreconditionFailed)
    assert isinstance(MissingMCNumber("Pending"), PreconditionFailed)


def test_call_attempt_message_pluralizes():
    assert InsufficientCallAttempts(2, 3).message.startswith("Log 1 more call attempt ")
    assert InsufficientCallAttempts(0, 3).message.startswith("Log 3 more call attempts ")


def test_not_found_message():
    error = NotFoundError("user", 42)
    assert error.message == "User 42 not found"
    assert error.details == {"entity": "user", "id": 42}
