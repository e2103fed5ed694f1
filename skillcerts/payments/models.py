from enum import Enum

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


# ==================== PYDANTIC MODELS ====================

class CreateOrderRequest(BaseModel):
    course_id: str = Field(..., min_length=1)  # id or slug; the amount always comes from the stored price


class PaymentVerifyRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
