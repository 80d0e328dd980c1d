from __future__ import annotations

import datetime as dt
import enum
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base_class import Base, TimestampMixin


class ProposalStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ServicePriority(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TherapeuticProposal(TimestampMixin, Base):
    __tablename__ = "therapeutic_proposals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"), index=True, nullable=False
    )
    therapist_id: Mapped[int] = mapped_column(
        ForeignKey("therapists.id", ondelete="RESTRICT"), index=True, nullable=False
    )
    status: Mapped[ProposalStatus] = mapped_column(
        Enum(ProposalStatus, name="proposal_status_enum"),
        nullable=False,
        default=ProposalStatus.DRAFT,
    )
    # CostOptions.model_dump(mode="json")
    cost_options: Mapped[dict | None] = mapped_column(JSON)
    review_notes: Mapped[str | None] = mapped_column(String(2000))
    reviewed_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    reviewed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

    patient = relationship("Patient")
    therapist = relationship("Therapist")
    services = relationship(
        "ProposalService",
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="ProposalService.id",
    )


class ProposalService(Base):
    __tablename__ = "proposal_services"
    __table_args__ = (
        CheckConstraint("session_count > 0", name="ck_proposal_service_sessions"),
        CheckConstraint("unit_price >= 0", name="ck_proposal_service_price"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    proposal_id: Mapped[int] = mapped_column(
        ForeignKey("therapeutic_proposals.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    service_id: Mapped[int] = mapped_column(
        ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    session_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # price frozen when the proposal is drafted
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    priority: Mapped[ServicePriority] = mapped_column(
        Enum(ServicePriority, name="service_priority_enum"),
        nullable=False,
        default=ServicePriority.MEDIUM,
    )
    notes: Mapped[str | None] = mapped_column(String(1000))

    proposal = relationship("TherapeuticProposal", back_populates="services")
    service = relationship("Service")
