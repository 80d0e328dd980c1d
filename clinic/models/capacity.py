from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base_class import Base, TimestampMixin


class CapacityConfig(TimestampMixin, Base):
    """Per-therapist workload ceilings. Missing row means settings defaults."""

    __tablename__ = "capacity_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    therapist_id: Mapped[int] = mapped_column(
        ForeignKey("therapists.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    max_sessions_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    max_sessions_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
    max_sessions_per_month: Mapped[int] = mapped_column(Integer, nullable=False)
    max_hours_per_day: Mapped[float] = mapped_column(Float, nullable=False)
    max_hours_per_week: Mapped[float] = mapped_column(Float, nullable=False)
    max_hours_per_month: Mapped[float] = mapped_column(Float, nullable=False)
    preferred_session_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=60
    )

    therapist = relationship("Therapist", back_populates="capacity")
