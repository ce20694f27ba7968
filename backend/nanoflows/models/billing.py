"""
Course enrollment and Razorpay payment orders.

Amounts on PaymentOrder are stored in paise (the unit Razorpay works in);
Purchase.amount is in rupees, matching Course.price.
"""

from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from nanoflows.core.database import Base
from nanoflows.core.types import GUID, generate_uuid, ValueEnum, StrEnum


class PaymentOrderStatus(StrEnum):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"


class PurchaseSource(StrEnum):
    FREE = "free"
    RAZORPAY = "razorpay"
    DIRECT = "direct"


class Purchase(Base):
    """A user's enrollment in a course"""
    __tablename__ = "purchases"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_purchase_user_course"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    amount = Column(Float, default=0.0, nullable=False)
    source = Column(ValueEnum(PurchaseSource), default=PurchaseSource.DIRECT, nullable=False)
    payment_id = Column(String(100), nullable=True)

    purchased_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")
    course = relationship("Course")


class PaymentOrder(Base):
    __tablename__ = "payment_orders"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    razorpay_order_id = Column(String(100), unique=True, index=True, nullable=False)
    razorpay_payment_id = Column(String(100), nullable=True)
    razorpay_signature = Column(String(255), nullable=True)

    amount = Column(Integer, nullable=False)  # paise
    currency = Column(String(10), default="INR", nullable=False)
    status = Column(ValueEnum(PaymentOrderStatus), default=PaymentOrderStatus.CREATED, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    course = relationship("Course")
