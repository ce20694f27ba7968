"""
Storefront product catalogue.
"""
import math
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, delete, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.ecommerce.responses import ok, serialize_review
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import Product, ProductCategory, Review, CartItem, WishlistItem, OrderItem
from nanoflows.modules.auth import require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.store import ProductCreate, ProductUpdate, ProductResponse
from nanoflows.services.order_service import slugify

router = APIRouter()

MAX_PAGE_SIZE = 50
FEATURED_LIMIT = 8
CATEGORY_VALUES = {c.value for c in ProductCategory}

SORT_ORDERS = {
    "newest": Product.created_at.desc(),
    "oldest": Product.created_at.asc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "name_asc": Product.name.asc(),
    "name_desc": Product.name.desc(),
}


async def get_product_or_404(db: AsyncSession, product_id: str, active_only: bool = False) -> Product:
    query = select(Product).where(Product.id == product_id)
    if active_only:
        query = query.where(Product.active == True)  # noqa: E712
    result = await execute_with_retry(db, query)
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: Optional[str] = None) -> bool:
    query = select(Product.id).where(Product.slug == slug)
    if exclude_id:
        query = query.where(Product.id != exclude_id)
    result = await execute_with_retry(db, query)
    return result.scalar_one_or_none() is not None


@router.get("")
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort: str = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1),
    db: AsyncSession = Depends(get_db)
):
    """Active products with filters, sorting and pagination"""
    limit = min(limit, MAX_PAGE_SIZE)

    conditions = [Product.active == True]  # noqa: E712
    if category and category != "all":
        if category not in CATEGORY_VALUES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category")
        conditions.append(Product.category == category)
    if search:
        term = f"%{search}%"
        conditions.append(or_(Product.name.ilike(term), Product.description.ilike(term)))
    if featured:
        conditions.append(Product.featured == True)  # noqa: E712
    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)

    total_result = await execute_with_retry(db, select(func.count(Product.id)).where(*conditions))
    total = total_result.scalar() or 0

    result = await execute_with_retry(
        db,
        select(Product)
        .where(*conditions)
        .order_by(SORT_ORDERS.get(sort, SORT_ORDERS["newest"]))
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return ok({
        "items": [ProductResponse.model_validate(p) for p in result.scalars().all()],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
    })


@router.get("/featured")
async def featured_products(db: AsyncSession = Depends(get_db)):
    result = await execute_with_retry(
        db,
        select(Product)
        .where(Product.active == True, Product.featured == True)  # noqa: E712
        .order_by(Product.created_at.desc())
        .limit(FEATURED_LIMIT)
    )
    return ok([ProductResponse.model_validate(p) for p in result.scalars().all()])


@router.get("/categories")
async def product_categories(db: AsyncSession = Depends(get_db)):
    """Categories that currently have active products"""
    result = await execute_with_retry(
        db,
        select(Product.category, func.count(Product.id))
        .where(Product.active == True)  # noqa: E712
        .group_by(Product.category)
        .order_by(Product.category)
    )
    return ok([
        {"category": getattr(category, "value", category), "count": count}
        for category, count in result.all()
    ])


@router.get("/{slug}")
async def get_product(slug: str, db: AsyncSession = Depends(get_db)):
    result = await execute_with_retry(db, select(Product).where(Product.slug == slug))
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    reviews_result = await execute_with_retry(
        db,
        select(Review).where(Review.product_id == product.id).order_by(Review.created_at.desc())
    )
    reviews = reviews_result.unique().scalars().all()
    average = sum(r.rating for r in reviews) / len(reviews) if reviews else 0

    data = ProductResponse.model_validate(product).model_dump(by_alias=True)
    data.update({
        "reviews": [serialize_review(r) for r in reviews],
        "averageRating": round(average, 1),
        "reviewCount": len(reviews),
    })
    return ok(data)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    slug = slugify(product_data.slug or product_data.name)
    if not slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product name must produce a valid slug")
    if await _slug_taken(db, slug):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A product with this slug already exists"
        )

    product = Product(**product_data.model_dump(exclude={"slug"}), slug=slug)
    db.add(product)
    await db.commit()
    await db.refresh(product)

    logger.info(f"[Store] Product {product.slug} created by {current_user.email}")
    return ok(ProductResponse.model_validate(product))


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    product = await get_product_or_404(db, product_id)

    updates = product_data.model_dump(exclude_unset=True)
    if updates.get("slug"):
        updates["slug"] = slugify(updates["slug"])
        if await _slug_taken(db, updates["slug"], exclude_id=product.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A product with this slug already exists"
            )
    else:
        updates.pop("slug", None)

    for field, value in updates.items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)

    return ok(ProductResponse.model_validate(product))


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    product = await get_product_or_404(db, product_id)

    await execute_with_retry(db, delete(CartItem).where(CartItem.product_id == product.id))
    await execute_with_retry(db, delete(WishlistItem).where(WishlistItem.product_id == product.id))
    # order history keeps the name and price snapshot
    await execute_with_retry(
        db, update(OrderItem).where(OrderItem.product_id == product.id).values(product_id=None)
    )
    await db.delete(product)
    await db.commit()

    logger.info(f"[Store] Product {product_id} deleted by {current_user.email}")
    return {"success": True, "message": "Product deleted"}
