"""
Database models for Leadflow.

All models are exported here for convenient imports:
    from leadflow.models import Lead, CommissionPolicy, CommissionRun, etc.
"""

from leadflow.models.activity import Activity, ActivityType
from leadflow.models.base import Base, Record, TimestampMixin
from leadflow.models.clock_event import ClockEvent, ClockEventType
from leadflow.models.commission_run import CommissionRun
from leadflow.models.invoice import Invoice
from leadflow.models.lead import (
    MC_NUMBER_PENDING,
    HandoffStatus,
    Lead,
    LeadHandoff,
    LeadSalesUser,
    LeadSource,
    LeadStatus,
    SalesRole,
)
from leadflow.models.policy import CommissionPolicy, PolicyType
from leadflow.models.user import Department, Organization, User

__all__ = [
    # Base
    "Base",
    "Record",
    "TimestampMixin",
    # Users
    "Organization",
    "User",
    "Department",
    # Leads
    "Lead",
    "LeadStatus",
    "LeadSource",
    "LeadSalesUser",
    "SalesRole",
    "LeadHandoff",
    "HandoffStatus",
    "MC_NUMBER_PENDING",
    # Activity
    "Activity",
    "ActivityType",
    # Commission
    "CommissionPolicy",
    "PolicyType",
    "CommissionRun",
    # Finance
    "Invoice",
    # Time tracking
    "ClockEvent",
    "ClockEventType",
]
