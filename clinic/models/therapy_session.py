from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base_class import Base, TimestampMixin


class SessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"
    RESCHEDULE_REQUESTED = "RESCHEDULE_REQUESTED"


# Sessions that occupy the therapist's agenda
ACTIVE_STATUSES = (
    SessionStatus.SCHEDULED,
    SessionStatus.CONFIRMED,
    SessionStatus.IN_PROGRESS,
    SessionStatus.COMPLETED,
)


class TherapySession(TimestampMixin, Base):
    __tablename__ = "therapy_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False
    )
    therapist_id: Mapped[int] = mapped_column(
        ForeignKey("therapists.id", ondelete="RESTRICT"), nullable=False
    )
    service_id: Mapped[int | None] = mapped_column(
        ForeignKey("services.id", ondelete="SET NULL")
    )
    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, name="session_status_enum"),
        nullable=False,
        default=SessionStatus.SCHEDULED,
    )
    scheduled_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    actual_duration_minutes: Mapped[int | None] = mapped_column(Integer)
    started_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    patient_satisfaction: Mapped[int | None] = mapped_column(Integer)  # 1..5
    therapist_satisfaction: Mapped[int | None] = mapped_column(Integer)  # 1..5
    notes: Mapped[str | None] = mapped_column(String(2000))

    patient = relationship("Patient")
    therapist = relationship("Therapist")
    service = relationship("Service")

    __table_args__ = (
        UniqueConstraint(
            "therapist_id", "scheduled_at", name="uq_session_therapist_start"
        ),
        CheckConstraint("duration_minutes > 0", name="ck_session_duration"),
        Index("ix_session_therapist_id", "therapist_id"),
        Index("ix_session_patient_id", "patient_id"),
        Index("ix_session_scheduled_at", "scheduled_at"),
    )
