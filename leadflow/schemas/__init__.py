"""Pydantic request/response schemas."""

from leadflow.schemas.commission import (
    BatchReportResponse,
    CommissionDeal,
    CommissionRunResponse,
    CommissionStats,
    MonthlyCommissionResponse,
)
from leadflow.schemas.lead import (
    CallAttemptRequest,
    LeadResponse,
    SalesUsersRequest,
    StatusChangeRequest,
    StatusChangeResponse,
    TimelineResponse,
)
from leadflow.schemas.policy import (
    ActiveLeadTier,
    PolicyActivateRequest,
    PolicyCreateRequest,
    PolicyResponse,
)
from leadflow.schemas.time_tracking import ClockEventResponse, ClockRequest

__all__ = [
    # Commission
    "MonthlyCommissionResponse",
    "CommissionDeal",
    "CommissionStats",
    "CommissionRunResponse",
    "BatchReportResponse",
    # Leads
    "StatusChangeRequest",
    "StatusChangeResponse",
    "CallAttemptRequest",
    "SalesUsersRequest",
    "LeadResponse",
    "TimelineResponse",
    # Policy
    "ActiveLeadTier",
    "PolicyCreateRequest",
    "PolicyActivateRequest",
    "PolicyResponse",
    # Time tracking
    "ClockRequest",
    "ClockEventResponse",
]
