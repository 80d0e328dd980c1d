from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base_class import Base, TimestampMixin


class EntryType(str, enum.Enum):
    SESSION = "SESSION"
    ASSESSMENT = "ASSESSMENT"
    MILESTONE = "MILESTONE"
    OBSERVATION = "OBSERVATION"


class ValidationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    REJECTED = "REJECTED"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ProgressEntry(TimestampMixin, Base):
    """Therapist's progress note for a patient, scored 0..100 overall."""

    __tablename__ = "progress_entries"
    __table_args__ = (
        CheckConstraint(
            "overall_progress >= 0 AND overall_progress <= 100",
            name="ck_progress_overall_range",
        ),
        Index("ix_progress_entry_date", "entry_date"),
        Index("ix_progress_patient_id", "patient_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    therapist_id: Mapped[int | None] = mapped_column(
        ForeignKey("therapists.id", ondelete="SET NULL")
    )
    entry_date: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    entry_type: Mapped[EntryType] = mapped_column(
        Enum(EntryType, name="progress_entry_type_enum"), nullable=False
    )
    validation_status: Mapped[ValidationStatus] = mapped_column(
        Enum(ValidationStatus, name="progress_validation_status_enum"),
        nullable=False,
        default=ValidationStatus.PENDING,
    )
    overall_progress: Mapped[int] = mapped_column(Integer, nullable=False)
    risk_level: Mapped[RiskLevel | None] = mapped_column(
        Enum(RiskLevel, name="risk_level_enum")
    )
    goals_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # domain scores (0..100), any of them may be missing
    emotional_score: Mapped[float | None] = mapped_column(Float)
    cognitive_score: Mapped[float | None] = mapped_column(Float)
    social_score: Mapped[float | None] = mapped_column(Float)
    physical_score: Mapped[float | None] = mapped_column(Float)
    treatment_adherence: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(String(4000))

    patient = relationship("Patient")
    therapist = relationship("Therapist")
