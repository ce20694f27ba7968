from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PurchaseCreate(BaseModel):
    course_id: str


class PurchaseResponse(BaseModel):
    id: str
    user_id: str
    course_id: str
    amount: float
    source: str
    payment_id: Optional[str] = None
    purchased_at: datetime

    class Config:
        from_attributes = True


class CreateOrderRequest(BaseModel):
    """Request to create a Razorpay order for a course"""
    course_id: str


class CreateOrderResponse(BaseModel):
    order_id: str
    amount: int  # in paise
    currency: str
    key_id: str  # Razorpay key for frontend checkout
    course_id: str
    course_title: str


class VerifyPaymentRequest(BaseModel):
    """Request to verify payment after checkout"""
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class EnrollFreeRequest(BaseModel):
    course_id: str


class PaymentOrderResponse(BaseModel):
    id: str
    course_id: str
    razorpay_order_id: str
    razorpay_payment_id: Optional[str] = None
    amount: int
    currency: str
    status: str
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True

