from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.ecommerce.products import get_product_or_404
from nanoflows.api.v1.endpoints.ecommerce.responses import ok
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import WishlistItem
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.store import WishlistAddRequest, WishlistItemResponse

router = APIRouter()


async def _find_item(db: AsyncSession, user_id: str, product_id: str):
    result = await execute_with_retry(
        db,
        select(WishlistItem).where(
            WishlistItem.user_id == user_id,
            WishlistItem.product_id == product_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.unique().scalar_one_or_none()


@router.get("")
async def get_wishlist(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(WishlistItem)
        .where(WishlistItem.user_id == current_user.id)
        .order_by(WishlistItem.created_at.desc())
    )
    items = [item for item in result.unique().scalars().all() if item.product is not None]
    return ok([WishlistItemResponse.model_validate(item) for item in items])


@router.post("/add")
async def add_to_wishlist(
    wishlist_data: WishlistAddRequest,
    response: Response,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Adding a product that is already in the wishlist is a no-op"""
    product = await get_product_or_404(db, wishlist_data.product_id)

    existing = await _find_item(db, current_user.id, product.id)
    if existing:
        return ok(WishlistItemResponse.model_validate(existing), message="Already in wishlist")

    db.add(WishlistItem(user_id=current_user.id, product_id=product.id))
    await db.commit()

    response.status_code = status.HTTP_201_CREATED
    item = await _find_item(db, current_user.id, product.id)
    return ok(WishlistItemResponse.model_validate(item), message="Added to wishlist")


@router.delete("/{product_id}")
async def remove_from_wishlist(
    product_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await execute_with_retry(
        db,
        delete(WishlistItem).where(
            WishlistItem.user_id == current_user.id,
            WishlistItem.product_id == product_id,
        )
    )
    await db.commit()
    return {"success": True, "message": "Removed from wishlist"}
