"""
Storefront schemas. The storefront API is camelCase on the wire
(``comparePrice``, ``shippingAddress`` ...); snake_case input is accepted too.
"""

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime

from nanoflows.models.store import ProductCategory, OrderStatus, PaymentStatus


class StoreModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ============== Products ==============

class ProductCreate(StoreModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: str = Field(..., min_length=1)
    short_description: Optional[str] = Field(None, max_length=500)
    price: float = Field(..., ge=0)
    compare_price: Optional[float] = Field(None, ge=0)
    category: ProductCategory
    images: List[str] = []
    thumbnail: Optional[str] = None
    stock: int = Field(0, ge=0)
    sku: Optional[str] = None
    featured: bool = False
    active: bool = True


class ProductUpdate(StoreModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    compare_price: Optional[float] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    images: Optional[List[str]] = None
    thumbnail: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    featured: Optional[bool] = None
    active: Optional[bool] = None


class ProductResponse(StoreModel):
    id: str
    name: str
    slug: str
    description: str
    short_description: Optional[str] = None
    price: float
    compare_price: Optional[float] = None
    category: str
    images: Optional[List[str]] = None
    thumbnail: Optional[str] = None
    stock: int
    sku: Optional[str] = None
    featured: bool
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


# ============== Cart ==============

class CartAddRequest(StoreModel):
    product_id: str
    quantity: int = 1


class CartUpdateRequest(StoreModel):
    quantity: int


class CartItemResponse(StoreModel):
    id: str
    product_id: str
    quantity: int
    product: ProductResponse


# ============== Orders ==============

class ShippingAddress(StoreModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class OrderCreate(StoreModel):
    shipping_address: Optional[ShippingAddress] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusUpdate(StoreModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_id: Optional[str] = None


class OrderItemResponse(StoreModel):
    id: str
    product_id: Optional[str] = None
    product_name: str
    product_image: Optional[str] = None
    price: float
    quantity: int
    total: float


class OrderResponse(StoreModel):
    id: str
    user_id: Optional[str] = None
    order_number: str
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    shipping_address: dict
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []


# ============== Wishlist ==============

class WishlistAddRequest(StoreModel):
    product_id: str


class WishlistItemResponse(StoreModel):
    id: str
    product_id: str
    created_at: datetime
    product: ProductResponse


# ============== Reviews ==============

class ReviewCreate(StoreModel):
    product_id: str
    rating: int
    title: Optional[str] = Field(None, max_length=255)
    comment: str = Field(..., min_length=1)


class ReviewUpdate(StoreModel):
    rating: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = Field(None, min_length=1)


class ReviewResponse(StoreModel):
    id: str
    user_id: str
    product_id: str
    rating: int
    title: Optional[str] = None
    comment: str
    verified: bool
    user_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
