"""
Storefront orders: checkout from the cart, history, admin status updates
and customer cancellation.
"""
import math
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.ecommerce.cart import get_cart_items
from nanoflows.api.v1.endpoints.ecommerce.responses import ok
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.exceptions import InsufficientStockError
from nanoflows.core.logging_config import logger
from nanoflows.models import CartItem, Order, OrderItem, OrderStatus, Product, CANCELLABLE_STATUSES
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.store import OrderCreate, OrderStatusUpdate, OrderResponse
from nanoflows.services.email_service import email_service
from nanoflows.services.order_service import calculate_totals, generate_order_number

router = APIRouter()

MAX_PAGE_SIZE = 50


async def take_stock(db: AsyncSession, product: Product, quantity: int) -> None:
    """Decrement stock in SQL, refusing to go below zero"""
    result = await execute_with_retry(
        db,
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await execute_with_retry(db, select(Product.stock).where(Product.id == product.id))
        raise InsufficientStockError(product.name, available=current.scalar() or 0)


async def return_stock(db: AsyncSession, product_id: str, quantity: int) -> None:
    await execute_with_retry(
        db,
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )


async def get_order_or_404(db: AsyncSession, order_id: str, current_user: Optional[CurrentUser] = None) -> Order:
    """Order by id; when a non-admin user is given it must be theirs"""
    query = select(Order).where(Order.id == order_id)
    if current_user is not None and not current_user.is_admin:
        query = query.where(Order.user_id == current_user.id)

    result = await execute_with_retry(db, query)
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.get("")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The user's orders, newest first. Admins see every order."""
    limit = min(limit, MAX_PAGE_SIZE)

    conditions = [] if current_user.is_admin else [Order.user_id == current_user.id]

    total_result = await execute_with_retry(db, select(func.count(Order.id)).where(*conditions))
    total = total_result.scalar() or 0

    result = await execute_with_retry(
        db,
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return ok({
        "items": [OrderResponse.model_validate(o) for o in result.scalars().all()],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
    })


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    order = await get_order_or_404(db, order_id, current_user)
    return ok(OrderResponse.model_validate(order))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Checkout the current cart.

    Line items snapshot the product name, thumbnail and price. Stock is
    decremented in SQL and the cart emptied in the same transaction as the
    order, so two concurrent checkouts cannot both sell the last unit.
    """
    if not order_data.shipping_address or not order_data.payment_method:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Shipping address and payment method are required"
        )

    cart_items = await get_cart_items(db, current_user.id)
    if not cart_items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty")

    for item in cart_items:
        if item.product is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product not found")
        if item.product.stock < item.quantity:
            raise InsufficientStockError(item.product.name, available=item.product.stock)

    totals = calculate_totals((item.product.price, item.quantity) for item in cart_items)

    order = Order(
        user_id=current_user.id,
        order_number=generate_order_number(),
        payment_method=order_data.payment_method,
        shipping_address=order_data.shipping_address.model_dump(by_alias=True),
        notes=order_data.notes,
        discount=0.0,
        **totals,
    )
    db.add(order)
    await db.flush()

    for item in cart_items:
        product: Product = item.product
        db.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            product_name=product.name,
            product_image=product.thumbnail,
            price=product.price,
            quantity=item.quantity,
            total=round(product.price * item.quantity, 2),
        ))
        await take_stock(db, product, item.quantity)

    await execute_with_retry(db, delete(CartItem).where(CartItem.user_id == current_user.id))
    await db.commit()

    await db.refresh(order, attribute_names=["items"])

    logger.info(f"[Store] Order {order.order_number} placed by {current_user.email} ({order.total})")

    background_tasks.add_task(
        email_service.send_order_confirmation_email,
        order_data.shipping_address.email,
        order_data.shipping_address.name or current_user.name,
        order.order_number,
        order.total,
        [{"name": i.product_name, "quantity": i.quantity, "total": i.total} for i in order.items],
    )

    return ok(OrderResponse.model_validate(order))


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    status_data: OrderStatusUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    order = await get_order_or_404(db, order_id)

    updates = status_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in updates.items():
        setattr(order, field, value)

    await db.commit()
    await db.refresh(order)

    logger.info(f"[Store] Order {order.order_number} updated by {current_user.email}: {updates}")
    return ok(OrderResponse.model_validate(order))


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a pending or processing order and put its items back in stock"""
    order = await get_order_or_404(db, order_id, current_user)

    if order.status not in CANCELLABLE_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot cancel this order")

    for item in order.items:
        if item.product_id is not None:
            await return_stock(db, item.product_id, item.quantity)

    order.status = OrderStatus.CANCELLED
    await db.commit()
    await db.refresh(order)

    logger.info(f"[Store] Order {order.order_number} cancelled by {current_user.email}")
    return ok(OrderResponse.model_validate(order))
