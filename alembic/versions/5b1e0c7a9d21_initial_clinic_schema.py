"""initial clinic schema

Revision ID: 5b1e0c7a9d21
Revises:
Create Date: 2026-10-19 10:12:44.120931

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b1e0c7a9d21"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "role_enum": ("PARENT", "THERAPIST", "COORDINATOR", "ADMIN"),
    "service_type_enum": (
        "EVALUATION",
        "TREATMENT",
        "CONSULTATION",
        "FOLLOW_UP",
        "ASSESSMENT",
    ),
    "session_status_enum": (
        "SCHEDULED",
        "CONFIRMED",
        "IN_PROGRESS",
        "COMPLETED",
        "CANCELLED",
        "NO_SHOW",
        "RESCHEDULE_REQUESTED",
    ),
    "payment_method_enum": ("CASH", "CARD", "TRANSFER", "CHECK"),
    "payment_type_enum": (
        "SESSION",
        "EVALUATION",
        "CONSULTATION",
        "PLAN_INSTALLMENT",
        "OTHER",
    ),
    "payment_status_enum": ("PENDING", "COMPLETED", "FAILED", "REFUNDED", "CANCELLED"),
    "progress_entry_type_enum": ("SESSION", "ASSESSMENT", "MILESTONE", "OBSERVATION"),
    "progress_validation_status_enum": ("PENDING", "VALIDATED", "REJECTED"),
    "risk_level_enum": ("low", "moderate", "high", "critical"),
    "proposal_status_enum": ("DRAFT", "SUBMITTED", "APPROVED", "REJECTED"),
    "service_priority_enum": ("HIGH", "MEDIUM", "LOW"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    ip_type = (
        postgresql.INET() if bind.dialect.name == "postgresql" else sa.String(45)
    )

    # 1) users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=512), nullable=False),
        sa.Column("role", _enum("role_enum"), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # 2) therapists
    op.create_table(
        "therapists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("specialty", sa.String(length=120), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_therapists_user_id", "therapists", ["user_id"], unique=True)

    # 3) capacity_configs
    op.create_table(
        "capacity_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "therapist_id",
            sa.Integer(),
            sa.ForeignKey("therapists.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("max_sessions_per_day", sa.Integer(), nullable=False),
        sa.Column("max_sessions_per_week", sa.Integer(), nullable=False),
        sa.Column("max_sessions_per_month", sa.Integer(), nullable=False),
        sa.Column("max_hours_per_day", sa.Float(), nullable=False),
        sa.Column("max_hours_per_week", sa.Float(), nullable=False),
        sa.Column("max_hours_per_month", sa.Float(), nullable=False),
        sa.Column(
            "preferred_session_minutes",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("60"),
        ),
        *_timestamps(),
    )

    # 4) patients
    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column(
            "parent_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        *_timestamps(),
    )
    op.create_index("ix_patients_parent_user_id", "patients", ["parent_user_id"])

    # 5) services
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("type", _enum("service_type_enum"), nullable=False),
        sa.Column("category", sa.String(length=80), nullable=True),
        sa.Column(
            "duration_minutes",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("60"),
        ),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "currency", sa.String(length=3), nullable=False, server_default="USD"
        ),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        *_timestamps(),
    )

    # 6) therapy_sessions
    op.create_table(
        "therapy_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Integer(),
            sa.ForeignKey("patients.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "therapist_id",
            sa.Integer(),
            sa.ForeignKey("therapists.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "service_id",
            sa.Integer(),
            sa.ForeignKey("services.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "status",
            _enum("session_status_enum"),
            nullable=False,
            server_default=sa.text("'SCHEDULED'"),
        ),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "duration_minutes",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("60"),
        ),
        sa.Column("actual_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("patient_satisfaction", sa.Integer(), nullable=True),
        sa.Column("therapist_satisfaction", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "therapist_id", "scheduled_at", name="uq_session_therapist_start"
        ),
        sa.CheckConstraint("duration_minutes > 0", name="ck_session_duration"),
    )
    op.create_index("ix_session_therapist_id", "therapy_sessions", ["therapist_id"])
    op.create_index("ix_session_patient_id", "therapy_sessions", ["patient_id"])
    op.create_index("ix_session_scheduled_at", "therapy_sessions", ["scheduled_at"])

    # 7) payments
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "parent_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "patient_id",
            sa.Integer(),
            sa.ForeignKey("patients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "currency", sa.String(length=3), nullable=False, server_default="USD"
        ),
        sa.Column("payment_method", _enum("payment_method_enum"), nullable=True),
        sa.Column("type", _enum("payment_type_enum"), nullable=False),
        sa.Column(
            "status",
            _enum("payment_status_enum"),
            nullable=False,
            server_default=sa.text("'PENDING'"),
        ),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reference", sa.String(length=120), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payment_created_at", "payments", ["created_at"])
    op.create_index("ix_payment_parent_user_id", "payments", ["parent_user_id"])

    # 8) progress_entries
    op.create_table(
        "progress_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Integer(),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "therapist_id",
            sa.Integer(),
            sa.ForeignKey("therapists.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("entry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("entry_type", _enum("progress_entry_type_enum"), nullable=False),
        sa.Column(
            "validation_status",
            _enum("progress_validation_status_enum"),
            nullable=False,
            server_default=sa.text("'PENDING'"),
        ),
        sa.Column("overall_progress", sa.Integer(), nullable=False),
        sa.Column("risk_level", _enum("risk_level_enum"), nullable=True),
        sa.Column(
            "goals_total", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "goals_completed",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("emotional_score", sa.Float(), nullable=True),
        sa.Column("cognitive_score", sa.Float(), nullable=True),
        sa.Column("social_score", sa.Float(), nullable=True),
        sa.Column("physical_score", sa.Float(), nullable=True),
        sa.Column("treatment_adherence", sa.Float(), nullable=True),
        sa.Column("notes", sa.String(length=4000), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "overall_progress >= 0 AND overall_progress <= 100",
            name="ck_progress_overall_range",
        ),
    )
    op.create_index("ix_progress_entry_date", "progress_entries", ["entry_date"])
    op.create_index("ix_progress_patient_id", "progress_entries", ["patient_id"])

    # 9) therapeutic_proposals + proposal_services
    op.create_table(
        "therapeutic_proposals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Integer(),
            sa.ForeignKey("patients.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "therapist_id",
            sa.Integer(),
            sa.ForeignKey("therapists.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "status",
            _enum("proposal_status_enum"),
            nullable=False,
            server_default=sa.text("'DRAFT'"),
        ),
        sa.Column("cost_options", sa.JSON(), nullable=True),
        sa.Column("review_notes", sa.String(length=2000), nullable=True),
        sa.Column(
            "reviewed_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_therapeutic_proposals_patient_id", "therapeutic_proposals", ["patient_id"]
    )
    op.create_index(
        "ix_therapeutic_proposals_therapist_id",
        "therapeutic_proposals",
        ["therapist_id"],
    )

    op.create_table(
        "proposal_services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "proposal_id",
            sa.Integer(),
            sa.ForeignKey("therapeutic_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "service_id",
            sa.Integer(),
            sa.ForeignKey("services.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("session_count", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "priority",
            _enum("service_priority_enum"),
            nullable=False,
            server_default=sa.text("'MEDIUM'"),
        ),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.CheckConstraint("session_count > 0", name="ck_proposal_service_sessions"),
        sa.CheckConstraint("unit_price >= 0", name="ck_proposal_service_price"),
    )
    op.create_index(
        "ix_proposal_services_proposal_id", "proposal_services", ["proposal_id"]
    )

    # 10) audit_logs
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("timestamp_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip", ip_type, nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_request_id", "audit_logs", ["request_id"])
    op.create_index("ix_audit_timestamp_utc", "audit_logs", ["timestamp_utc"])
    op.create_index("ix_audit_entity", "audit_logs", ["entity", "entity_id"])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "audit_logs",
        "proposal_services",
        "therapeutic_proposals",
        "progress_entries",
        "payments",
        "therapy_sessions",
        "services",
        "patients",
        "capacity_configs",
        "therapists",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(bind, checkfirst=True)
