"""
Storefront API endpoints. Responses use the {"success": true, "data": ...}
envelope; errors keep the standard {"detail": ...} body.
"""
from fastapi import APIRouter

from nanoflows.api.v1.endpoints import auth
from nanoflows.api.v1.endpoints.ecommerce import products, cart, orders, wishlist, reviews

ecommerce_router = APIRouter(prefix="/ecommerce", tags=["Storefront"])

# Storefront accounts are the academy accounts
ecommerce_router.include_router(auth.router, prefix="/auth", tags=["Storefront Auth"])
ecommerce_router.include_router(products.router, prefix="/products", tags=["Storefront Products"])
ecommerce_router.include_router(cart.router, prefix="/cart", tags=["Storefront Cart"])
ecommerce_router.include_router(orders.router, prefix="/orders", tags=["Storefront Orders"])
ecommerce_router.include_router(wishlist.router, prefix="/wishlist", tags=["Storefront Wishlist"])
ecommerce_router.include_router(reviews.router, prefix="/reviews", tags=["Storefront Reviews"])
