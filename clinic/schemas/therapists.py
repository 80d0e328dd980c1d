from pydantic import BaseModel, ConfigDict, Field, constr


class TherapistCreateIn(BaseModel):
    first_name: constr(min_length=1, max_length=80)
    last_name: constr(min_length=1, max_length=80)
    specialty: constr(max_length=120) | None = None
    user_id: int | None = None
    is_active: bool = True


class TherapistOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    full_name: str
    specialty: str | None = None
    user_id: int | None = None
    is_active: bool


class CapacityIn(BaseModel):
    max_sessions_per_day: int = Field(ge=1, le=20)
    max_sessions_per_week: int = Field(ge=1, le=50)
    max_sessions_per_month: int = Field(ge=1, le=200)
    max_hours_per_day: float = Field(ge=1, le=12)
    max_hours_per_week: float = Field(ge=1, le=60)
    max_hours_per_month: float = Field(ge=1, le=240)
    preferred_session_minutes: int = Field(60, ge=15, le=480)


class CapacityOut(CapacityIn):
    model_config = ConfigDict(from_attributes=True)

    therapist_id: int
