from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic.models.therapy_session import SessionStatus


class SessionCreateIn(BaseModel):
    patient_id: int
    therapist_id: int
    service_id: int | None = None
    scheduled_at: dt.datetime
    duration_minutes: int = Field(60, gt=0, le=480)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("scheduled_at")
    @classmethod
    def _must_be_aware(cls, v: dt.datetime) -> dt.datetime:
        if v.tzinfo is None:
            raise ValueError("scheduled_at must carry a timezone offset")
        return v


class SessionStatusIn(BaseModel):
    status: SessionStatus
    actual_duration_minutes: int | None = Field(None, gt=0, le=600)
    patient_satisfaction: int | None = Field(None, ge=1, le=5)
    therapist_satisfaction: int | None = Field(None, ge=1, le=5)
    notes: str | None = Field(None, max_length=2000)


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    therapist_id: int
    service_id: int | None = None
    status: SessionStatus
    scheduled_at: dt.datetime
    duration_minutes: int
    actual_duration_minutes: int | None = None
    patient_satisfaction: int | None = None
    therapist_satisfaction: int | None = None
