from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, constr


class PatientCreateIn(BaseModel):
    first_name: constr(min_length=1, max_length=80)
    last_name: constr(min_length=1, max_length=80)
    date_of_birth: dt.date | None = None
    parent_user_id: int


class PatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    full_name: str
    date_of_birth: dt.date | None = None
    parent_user_id: int
    is_active: bool
