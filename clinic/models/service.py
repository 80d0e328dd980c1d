from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import Boolean, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base_class import Base, TimestampMixin


class ServiceType(str, enum.Enum):
    EVALUATION = "EVALUATION"
    TREATMENT = "TREATMENT"
    CONSULTATION = "CONSULTATION"
    FOLLOW_UP = "FOLLOW_UP"
    ASSESSMENT = "ASSESSMENT"


class Service(TimestampMixin, Base):
    """Billable service from the clinic catalogue."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    type: Mapped[ServiceType] = mapped_column(
        Enum(ServiceType, name="service_type_enum"), nullable=False
    )
    category: Mapped[str | None] = mapped_column(String(80))
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
