from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, constr

from clinic.models.payment import PaymentMethod, PaymentStatus, PaymentType


class PaymentCreateIn(BaseModel):
    parent_user_id: int
    patient_id: int | None = None
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: constr(min_length=3, max_length=3) = "USD"
    payment_method: PaymentMethod | None = None
    type: PaymentType = PaymentType.SESSION
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: dt.datetime | None = None
    reference: constr(max_length=120) | None = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    parent_user_id: int
    patient_id: int | None = None
    amount: Decimal
    currency: str
    payment_method: PaymentMethod | None = None
    type: PaymentType
    status: PaymentStatus
    paid_at: dt.datetime | None = None
    created_at: dt.datetime
