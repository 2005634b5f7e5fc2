# backend/models/payment_models.py

from pydantic import BaseModel, Field

from backend.models.common import ObjectIdStr


class CreateOrderRequest(BaseModel):
    dealId: ObjectIdStr
    amount: float = Field(..., ge=1)


class VerifyPaymentRequest(BaseModel):
    """Fields the gateway checkout hands back to the client after payment."""
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    dealId: ObjectIdStr
