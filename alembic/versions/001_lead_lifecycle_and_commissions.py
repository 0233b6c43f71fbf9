"""Lead lifecycle and commission schema

Revision ID: 001_lead_lifecycle_and_commissions
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_lead_lifecycle_and_commissions"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    "department": ("sales", "dispatch", "admin"),
    "leadstatus": ("New", "InProgress", "FollowUp", "HandToDispatch", "Active", "Lost"),
    "leadsource": ("SQL", "MQL"),
    "salesrole": ("starter", "closer"),
    "handoffstatus": ("pending", "accepted", "rejected"),
    "policytype": ("sales", "dispatch"),
    "activitytype": (
        "status_changed",
        "call_logged",
        "sales_users_assigned",
        "handoff_created",
        "policy_created",
        "policy_activated",
        "policy_archived",
        "commission_calculated",
        "reminder_sent",
    ),
    "clockeventtype": ("IN", "OUT"),
}


def _enum(name: str):
    # Types are created once up front; policytype is shared by two tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    # Organizations
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("department", _enum("department"), nullable=False, server_default="sales"),
        sa.Column("is_team_lead", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_org_id", "users", ["org_id"])

    # Leads
    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("mc_number", sa.String(50), nullable=False, server_default="Pending"),
        sa.Column("status", _enum("leadstatus"), nullable=False, server_default="New"),
        sa.Column("source", _enum("leadsource"), nullable=False, server_default="SQL"),
        sa.Column("call_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("in_progress_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hand_to_dispatch_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_assigned_to", "leads", ["assigned_to"])
    op.create_index("ix_leads_org_id", "leads", ["org_id"])

    # Starter / closer attribution
    op.create_table(
        "lead_sales_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("lead_id", sa.Integer(), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", _enum("salesrole"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("lead_id", "role", name="uq_lead_sales_user_role"),
    )
    op.create_index("ix_lead_sales_users_lead_id", "lead_sales_users", ["lead_id"])
    op.create_index("ix_lead_sales_users_user_id", "lead_sales_users", ["user_id"])

    # Dispatch handoffs
    op.create_table(
        "lead_handoffs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("lead_id", sa.Integer(), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sales_rep_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("dispatcher_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", _enum("handoffstatus"), nullable=False, server_default="pending"),
        sa.Column("handoff_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("handoff_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_lead_handoffs_lead_id", "lead_handoffs", ["lead_id"])
    op.create_index("ix_lead_handoffs_sales_rep_id", "lead_handoffs", ["sales_rep_id"])
    op.create_index("ix_lead_handoffs_dispatcher_id", "lead_handoffs", ["dispatcher_id"])
    op.create_index("ix_lead_handoffs_status", "lead_handoffs", ["status"])

    # Invoices
    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("invoice_number", sa.String(50), nullable=True),
        sa.Column("lead_id", sa.Integer(), sa.ForeignKey("leads.id"), nullable=False),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("dispatcher_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_invoices_lead_id", "invoices", ["lead_id"])
    op.create_index("ix_invoices_org_id", "invoices", ["org_id"])
    op.create_index("ix_invoices_dispatcher_id", "invoices", ["dispatcher_id"])

    # Commission policies
    op.create_table(
        "commission_policies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("policy_type", _enum("policytype"), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active_lead_table", sa.JSON(), nullable=False),
        sa.Column("starter_split", sa.Numeric(5, 4), nullable=False, server_default="1"),
        sa.Column("closer_split", sa.Numeric(5, 4), nullable=False, server_default="1"),
        sa.Column("inbound_factor", sa.Numeric(5, 4), nullable=False, server_default="1"),
        sa.Column("penalty_factor", sa.Numeric(5, 4), nullable=False, server_default="1"),
        sa.Column("team_lead_bonus_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("commission_rate", sa.Numeric(5, 4), nullable=True),
        sa.Column("per_truck_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_commission_policies_org_id", "commission_policies", ["org_id"])
    op.create_index("ix_commission_policies_policy_type", "commission_policies", ["policy_type"])
    op.create_index("ix_commission_policies_is_active", "commission_policies", ["is_active"])
    # At most one active policy per (org, type)
    op.create_index(
        "uq_commission_policy_active",
        "commission_policies",
        ["org_id", "policy_type"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    # Commission runs (append-only, one per user and month)
    op.create_table(
        "commission_runs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("run_type", _enum("policytype"), nullable=False),
        sa.Column("policy_id", sa.Integer(), sa.ForeignKey("commission_policies.id"), nullable=False),
        sa.Column("active_lead_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("base_commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("adjusted_commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("rep_of_month_bonus", sa.Numeric(12, 2), nullable=False),
        sa.Column("active_trucks_bonus", sa.Numeric(12, 2), nullable=False),
        sa.Column("team_lead_bonus", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("penalty_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("calculation_details", sa.JSON(), nullable=False),
        sa.Column("calculated_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "year", "month", name="uq_commission_run_user_month"),
    )
    op.create_index("ix_commission_runs_org_id", "commission_runs", ["org_id"])
    op.create_index("ix_commission_runs_user_id", "commission_runs", ["user_id"])

    # Activity timeline
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("activity_type", _enum("activitytype"), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("previous_status", sa.String(30), nullable=True),
        sa.Column("next_status", sa.String(30), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_activity_type", "activities", ["activity_type"])
    op.create_index("ix_activities_created_at", "activities", ["created_at"])
    op.create_index("ix_activities_entity", "activities", ["entity_type", "entity_id"])

    # Clock events (append-only)
    op.create_table(
        "clock_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_type", _enum("clockeventtype"), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
    )
    op.create_index("ix_clock_events_user_id", "clock_events", ["user_id"])
    op.create_index("ix_clock_events_timestamp", "clock_events", ["timestamp"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "clock_events",
        "activities",
        "commission_runs",
        "commission_policies",
        "invoices",
        "lead_handoffs",
        "lead_sales_users",
        "leads",
        "users",
        "organizations",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(bind, checkfirst=True)
