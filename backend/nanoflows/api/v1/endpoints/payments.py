"""
RAZORPAY COURSE PAYMENTS
========================
1. Student clicks Buy -> /payments/create-order -> Razorpay order_id
2. Frontend opens Razorpay checkout with order_id
3. Frontend calls /payments/verify -> signature checked, course unlocked

Free courses skip the gateway via /payments/enroll-free.
"""

from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.api.v1.endpoints.purchases import enroll, find_purchase
from nanoflows.core.config import settings
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.exceptions import InvalidSignatureError, PaymentNotConfiguredError
from nanoflows.core.logging_config import logger
from nanoflows.core.rate_limiter import limiter
from nanoflows.models import PaymentOrder, PaymentOrderStatus, PurchaseSource, NotificationType
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.billing import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    EnrollFreeRequest,
    PaymentOrderResponse,
    PurchaseResponse,
)
from nanoflows.services.email_service import email_service
from nanoflows.services.notification_service import notification_service
from nanoflows.services.payment_service import payment_service, rupees_to_paise

router = APIRouter()


@router.post("/create-order", response_model=CreateOrderResponse)
@limiter.limit("10/minute")
async def create_order(
    request: Request,
    order_request: CreateOrderRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a Razorpay order for a paid course"""
    if not payment_service.is_configured:
        raise PaymentNotConfiguredError()

    course = await get_course_or_404(db, order_request.course_id)

    if await find_purchase(db, current_user.id, course.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Course already purchased")

    if course.free:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use enroll-free for free courses"
        )

    amount = rupees_to_paise(course.price)
    order = await payment_service.create_order(
        amount=amount,
        receipt=f"course_{course.id[:8]}_{int(datetime.utcnow().timestamp())}",
        notes={"user_id": current_user.id, "course_id": course.id},
    )

    payment_order = PaymentOrder(
        user_id=current_user.id,
        course_id=course.id,
        razorpay_order_id=order["id"],
        amount=amount,
        currency=order.get("currency", settings.PAYMENT_CURRENCY),
        status=PaymentOrderStatus.CREATED,
    )
    db.add(payment_order)
    await db.commit()

    logger.log_payment_event("order_created", order["id"], success=True, amount=amount, course_id=course.id)

    return CreateOrderResponse(
        order_id=order["id"],
        amount=amount,
        currency=payment_order.currency,
        key_id=payment_service.key_id,
        course_id=course.id,
        course_title=course.title,
    )


@router.post("/verify")
async def verify_payment(
    verify_request: VerifyPaymentRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Check the checkout signature and unlock the course"""
    if not payment_service.is_configured:
        raise PaymentNotConfiguredError()

    result = await execute_with_retry(
        db,
        select(PaymentOrder)
        .where(
            PaymentOrder.razorpay_order_id == verify_request.razorpay_order_id,
            PaymentOrder.user_id == current_user.id,
        )
        .options(selectinload(PaymentOrder.course))
    )
    payment_order = result.scalar_one_or_none()
    if not payment_order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment order not found")

    # Already processed: hand back the existing enrollment
    if payment_order.status == PaymentOrderStatus.PAID:
        purchase = await find_purchase(db, current_user.id, payment_order.course_id)
        return {
            "success": True,
            "message": "Payment already verified",
            "purchase": PurchaseResponse.model_validate(purchase) if purchase else None,
        }

    if not payment_service.verify_signature(
        verify_request.razorpay_order_id,
        verify_request.razorpay_payment_id,
        verify_request.razorpay_signature,
    ):
        payment_order.status = PaymentOrderStatus.FAILED
        payment_order.razorpay_payment_id = verify_request.razorpay_payment_id
        await db.commit()

        logger.log_payment_event(
            "verify",
            verify_request.razorpay_order_id,
            success=False,
            reason="invalid_signature",
        )
        raise InvalidSignatureError()

    course = payment_order.course
    payment_order.status = PaymentOrderStatus.PAID
    payment_order.razorpay_payment_id = verify_request.razorpay_payment_id
    payment_order.razorpay_signature = verify_request.razorpay_signature
    payment_order.paid_at = datetime.utcnow()

    purchase = await find_purchase(db, current_user.id, course.id)
    if purchase is None:
        purchase = await enroll(
            db,
            current_user.id,
            course,
            PurchaseSource.RAZORPAY,
            payment_id=verify_request.razorpay_payment_id,
        )

    amount_rupees = payment_order.amount / 100
    await notification_service.create(
        db,
        user_id=current_user.id,
        notification_type=NotificationType.PAYMENT_SUCCESS,
        title="Payment successful",
        message=f"You are now enrolled in {course.title}.",
        data={
            "course_id": course.id,
            "amount": amount_rupees,
            "payment_id": verify_request.razorpay_payment_id,
        },
    )
    await db.commit()
    await db.refresh(purchase)

    background_tasks.add_task(
        email_service.send_payment_success_email,
        current_user.email,
        current_user.name,
        course.title,
        amount_rupees,
        verify_request.razorpay_payment_id,
    )

    logger.log_payment_event(
        "verify",
        verify_request.razorpay_order_id,
        success=True,
        amount=payment_order.amount,
        payment_id=verify_request.razorpay_payment_id,
    )

    return {
        "success": True,
        "message": "Payment verified successfully",
        "purchase": PurchaseResponse.model_validate(purchase),
    }


@router.post("/enroll-free", status_code=status.HTTP_201_CREATED)
async def enroll_free(
    enroll_request: EnrollFreeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course_or_404(db, enroll_request.course_id)

    if not course.free:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This course is not free"
        )

    if await find_purchase(db, current_user.id, course.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Course already purchased")

    purchase = await enroll(db, current_user.id, course, PurchaseSource.FREE)
    await db.commit()
    await db.refresh(purchase)

    return {
        "success": True,
        "message": "Enrolled successfully",
        "purchase": PurchaseResponse.model_validate(purchase),
    }


@router.get("/history")
async def get_payment_history(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(PaymentOrder)
        .where(PaymentOrder.user_id == current_user.id)
        .options(selectinload(PaymentOrder.course))
        .order_by(PaymentOrder.created_at.desc())
    )

    orders = []
    for order in result.scalars().all():
        item = PaymentOrderResponse.model_validate(order).model_dump()
        item["course_title"] = order.course.title if order.course else None
        orders.append(item)

    return {"orders": orders}
