"""
Product reviews. One review per user and product; a review is marked
verified when the author has a delivered order containing the product.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.ecommerce.products import get_product_or_404
from nanoflows.api.v1.endpoints.ecommerce.responses import ok, serialize_review
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import Review, Order, OrderItem, OrderStatus
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.store import ReviewCreate, ReviewUpdate

router = APIRouter()


def validate_rating(rating: int) -> None:
    if rating < 1 or rating > 5:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rating must be between 1 and 5")


async def _get_review(db: AsyncSession, review_id: str) -> Review:
    result = await execute_with_retry(
        db, select(Review).where(Review.id == review_id).execution_options(populate_existing=True)
    )
    review = result.unique().scalar_one_or_none()
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


async def has_delivered_purchase(db: AsyncSession, user_id: str, product_id: str) -> bool:
    result = await execute_with_retry(
        db,
        select(Order.id)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .where(
            Order.user_id == user_id,
            Order.status == OrderStatus.DELIVERED,
            OrderItem.product_id == product_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


@router.get("/product/{product_id}")
async def product_reviews(product_id: str, db: AsyncSession = Depends(get_db)):
    result = await execute_with_retry(
        db,
        select(Review).where(Review.product_id == product_id).order_by(Review.created_at.desc())
    )
    return ok([serialize_review(r) for r in result.unique().scalars().all()])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(
    review_data: ReviewCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    validate_rating(review_data.rating)
    product = await get_product_or_404(db, review_data.product_id)

    existing = await execute_with_retry(
        db,
        select(Review.id).where(Review.user_id == current_user.id, Review.product_id == product.id)
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already reviewed this product"
        )

    review = Review(
        user_id=current_user.id,
        product_id=product.id,
        rating=review_data.rating,
        title=review_data.title,
        comment=review_data.comment,
        verified=await has_delivered_purchase(db, current_user.id, product.id),
    )
    db.add(review)
    await db.commit()

    return ok(serialize_review(await _get_review(db, review.id)))


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    review_data: ReviewUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    review = await _get_review(db, review_id)
    if review.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")

    updates = review_data.model_dump(exclude_unset=True, exclude_none=True)
    if "rating" in updates:
        validate_rating(updates["rating"])

    for field, value in updates.items():
        setattr(review, field, value)

    await db.commit()
    await db.refresh(review)

    return ok(serialize_review(review))


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    review = await _get_review(db, review_id)
    if review.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")

    await db.delete(review)
    await db.commit()

    return {"success": True, "message": "Review deleted"}
