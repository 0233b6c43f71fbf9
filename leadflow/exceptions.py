"""
Domain errors.

Each error carries a machine-readable code, a human message and a details
dict. The API layer renders them as {"error", "message", "details"} with the
error's HTTP status.
"""

from typing import Any, Optional


class LeadflowError(Exception):
    """Base exception for domain errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(LeadflowError):
    """Malformed input (bad month format, missing field). Raised before any side effect."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(LeadflowError):
    """Referenced lead/user/policy/organization does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity.capitalize()} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )


class PreconditionFailed(LeadflowError):
    """A lead transition guard was violated. The caller may retry once fixed."""

    status_code = 412
    code = "PRECONDITION_FAILED"


class InsufficientCallAttempts(PreconditionFailed):
    code = "INSUFFICIENT_CALL_ATTEMPTS"

    def __init__(self, current: int, required: int) -> None:
        missing = required - current
        plural = "attempt" if missing == 1 else "attempts"
        super().__init__(
            f"Log {missing} more call {plural} before handing this lead to dispatch "
            f"({current} of {required})",
            details={"current": current, "required": required, "missing": missing},
        )


class MissingMCNumber(PreconditionFailed):
    code = "MISSING_MC_NUMBER"

    def __init__(self, current: Optional[str]) -> None:
        super().__init__(
            "Record the carrier's MC number before handing this lead to dispatch",
            details={"current": current},
        )


class InvalidTransition(LeadflowError):
    """The requested status is not reachable from the lead's current status."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move a lead from {current} to {target}",
            details={"from": current, "to": target},
        )


class NoActivePolicy(LeadflowError):
    """No active commission policy for (org, type); blocks computation."""

    status_code = 409
    code = "NO_ACTIVE_POLICY"

    def __init__(self, org_id: Optional[int], policy_type: str) -> None:
        super().__init__(
            f"No active {policy_type} commission policy for organization {org_id}",
            details={"org_id": org_id, "type": policy_type},
        )


class PolicyTypeMismatch(LeadflowError):
    status_code = 400
    code = "POLICY_TYPE_MISMATCH"

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"Policy is of type {actual}, expected {expected}",
            details={"expected": expected, "actual": actual},
        )


class ComputationError(LeadflowError):
    """Unexpected failure while calculating a commission."""

    status_code = 500
    code = "COMPUTATION_ERROR"
