"""
Shopping cart. One row per (user, product); adding again merges quantities.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.ecommerce.products import get_product_or_404
from nanoflows.api.v1.endpoints.ecommerce.responses import ok
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.exceptions import InsufficientStockError
from nanoflows.models import CartItem
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.store import CartAddRequest, CartUpdateRequest, CartItemResponse

router = APIRouter()


async def get_cart_items(db: AsyncSession, user_id: str) -> List[CartItem]:
    result = await execute_with_retry(
        db,
        select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.created_at)
    )
    return list(result.unique().scalars().all())


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid quantity")


@router.get("")
async def get_cart(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    items = [item for item in await get_cart_items(db, current_user.id) if item.product is not None]
    subtotal = sum(item.product.price * item.quantity for item in items)

    return ok({
        "items": [CartItemResponse.model_validate(item) for item in items],
        "subtotal": round(subtotal, 2),
        "itemCount": sum(item.quantity for item in items),
    })


@router.post("/add")
async def add_to_cart(
    cart_data: CartAddRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    _check_quantity(cart_data.quantity)
    product = await get_product_or_404(db, cart_data.product_id, active_only=True)

    result = await execute_with_retry(
        db,
        select(CartItem).where(
            CartItem.user_id == current_user.id,
            CartItem.product_id == product.id,
        )
    )
    item = result.unique().scalar_one_or_none()

    quantity = cart_data.quantity + (item.quantity if item else 0)
    if quantity > product.stock:
        raise InsufficientStockError(available=product.stock)

    if item:
        item.quantity = quantity
    else:
        db.add(CartItem(user_id=current_user.id, product_id=product.id, quantity=quantity))

    await db.commit()
    return {"success": True, "message": "Added to cart"}


@router.put("/{item_id}")
async def update_cart_item(
    item_id: str,
    cart_data: CartUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    _check_quantity(cart_data.quantity)

    result = await execute_with_retry(
        db,
        select(CartItem).where(CartItem.id == item_id, CartItem.user_id == current_user.id)
    )
    item = result.unique().scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")

    if item.product is not None and cart_data.quantity > item.product.stock:
        raise InsufficientStockError(available=item.product.stock)

    item.quantity = cart_data.quantity
    await db.commit()

    return {"success": True, "message": "Cart updated"}


@router.delete("/{item_id}")
async def remove_cart_item(
    item_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await execute_with_retry(
        db,
        delete(CartItem).where(CartItem.id == item_id, CartItem.user_id == current_user.id)
    )
    await db.commit()
    return {"success": True, "message": "Item removed from cart"}


@router.delete("")
async def clear_cart(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await execute_with_retry(db, delete(CartItem).where(CartItem.user_id == current_user.id))
    await db.commit()
    return {"success": True, "message": "Cart cleared"}
