# backend/models/deal_models.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from backend.models.common import ObjectIdStr


class DealStatus(str, Enum):
    NEGOTIATING = "negotiating"
    AGREED = "agreed"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({DealStatus.COMPLETED, DealStatus.CANCELLED})

# Edges a party may request through the status endpoint. payment_pending and
# paid are listed for completeness but are entered only by the payment flow.
TRANSITIONS = {
    DealStatus.NEGOTIATING: frozenset({DealStatus.AGREED, DealStatus.CANCELLED}),
    DealStatus.AGREED: frozenset({DealStatus.PAYMENT_PENDING, DealStatus.CANCELLED}),
    DealStatus.PAYMENT_PENDING: frozenset({DealStatus.PAID, DealStatus.CANCELLED}),
    DealStatus.PAID: frozenset({DealStatus.COMPLETED, DealStatus.CANCELLED}),
    DealStatus.COMPLETED: frozenset(),
    DealStatus.CANCELLED: frozenset(),
}

PAYMENT_ONLY_STATUSES = frozenset({DealStatus.PAYMENT_PENDING, DealStatus.PAID})


class DealCreateRequest(BaseModel):
    grainId: ObjectIdStr
    quantity: float = Field(..., ge=0.1)
    agreedPrice: float = Field(..., ge=1)
    deliveryAddress: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)


class DealStatusUpdateRequest(BaseModel):
    status: DealStatus
    deliveryDate: Optional[datetime] = None
    deliveryAddress: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)
