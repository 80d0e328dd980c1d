from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, constr

from clinic.models.service import ServiceType


class ServiceCreateIn(BaseModel):
    code: constr(min_length=1, max_length=32)
    name: constr(min_length=1, max_length=160)
    type: ServiceType
    category: constr(max_length=80) | None = None
    duration_minutes: int = Field(60, gt=0, le=480)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    currency: constr(min_length=3, max_length=3) = "USD"


class ServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    type: ServiceType
    category: str | None = None
    duration_minutes: int
    price: Decimal
    currency: str
    is_active: bool
