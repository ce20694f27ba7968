from typing import Any

from nanoflows.models import Review
from nanoflows.schemas.store import ReviewResponse


def ok(data: Any = None, **extra) -> dict:
    """Storefront success envelope"""
    body = {"success": True, "data": data}
    body.update(extra)
    return body


def serialize_review(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        user_id=review.user_id,
        product_id=review.product_id,
        rating=review.rating,
        title=review.title,
        comment=review.comment,
        verified=review.verified,
        user_name=review.author.name if review.author else None,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )
