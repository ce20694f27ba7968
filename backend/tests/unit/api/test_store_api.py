"""
Unit Tests for the storefront: products, cart, orders, wishlist, reviews
"""
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import Delete, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.ecommerce.orders import take_stock
from nanoflows.core.exceptions import InsufficientStockError
from nanoflows.main import app
from nanoflows.models import CartItem, Order, Product

SHIPPING_ADDRESS = {
    'name': 'Grace Buyer',
    'email': 'grace@example.com',
    'phone': '+91 90000 00000',
    'address': '12 MG Road',
    'city': 'Bengaluru',
    'state': 'KA',
    'postalCode': '560001',
    'country': 'IN',
}


async def add_to_cart(client: AsyncClient, headers: dict, product_id: str, quantity: int = 1):
    return await client.post('/api/v1/ecommerce/cart/add', headers=headers, json={
        'productId': product_id, 'quantity': quantity,
    })


async def checkout(client: AsyncClient, headers: dict, **overrides):
    payload = {'shippingAddress': SHIPPING_ADDRESS, 'paymentMethod': 'cod'}
    payload.update(overrides)
    return await client.post('/api/v1/ecommerce/orders', headers=headers, json=payload)


async def stock_of(db_session, product_id: str) -> int:
    db_session.expunge_all()
    result = await db_session.execute(select(Product.stock).where(Product.id == product_id))
    return result.scalar_one()


class TestProducts:

    async def _create(self, client, headers, **overrides):
        payload = {
            'name': 'USB-C Hub',
            'description': 'Seven ports',
            'shortDescription': 'Hub',
            'price': 25.0,
            'comparePrice': 35.0,
            'category': 'other',
            'stock': 10,
        }
        payload.update(overrides)
        return await client.post('/api/v1/ecommerce/products', headers=headers, json=payload)

    @pytest.mark.asyncio
    async def test_create_derives_slug(self, client: AsyncClient, admin_auth_headers):
        response = await self._create(client, admin_auth_headers)

        assert response.status_code == 201
        data = response.json()['data']
        assert data['slug'] == 'usb-c-hub'
        assert data['comparePrice'] == 35.0
        assert data['shortDescription'] == 'Hub'

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, client: AsyncClient, product, admin_auth_headers):
        response = await self._create(client, admin_auth_headers, name='Mechanical Keyboard')

        assert response.status_code == 400
        assert response.json()['detail'] == 'A product with this slug already exists'

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client: AsyncClient, auth_headers):
        response = await self._create(client, auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_filters_and_pagination(self, client: AsyncClient, product, admin_auth_headers):
        await self._create(client, admin_auth_headers)
        await self._create(client, admin_auth_headers, name='Hidden Cable', active=False)

        everything = (await client.get('/api/v1/ecommerce/products')).json()['data']
        assert everything['total'] == 2

        cheap = await client.get('/api/v1/ecommerce/products', params={'maxPrice': 30})
        assert [p['name'] for p in cheap.json()['data']['items']] == ['USB-C Hub']

        by_category = await client.get('/api/v1/ecommerce/products', params={'category': 'electronics'})
        assert [p['slug'] for p in by_category.json()['data']['items']] == ['mechanical-keyboard']

        sorted_desc = await client.get('/api/v1/ecommerce/products', params={'sort': 'price_desc'})
        assert [p['price'] for p in sorted_desc.json()['data']['items']] == [60.0, 25.0]

        paged = (await client.get('/api/v1/ecommerce/products', params={'limit': 1, 'page': 2})).json()['data']
        assert len(paged['items']) == 1
        assert paged['totalPages'] == 2

    @pytest.mark.asyncio
    async def test_invalid_category(self, client: AsyncClient):
        response = await client.get('/api/v1/ecommerce/products', params={'category': 'spaceships'})

        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid category'

    @pytest.mark.asyncio
    async def test_featured_and_categories(self, client: AsyncClient, product, admin_auth_headers):
        await self._create(client, admin_auth_headers)

        featured = await client.get('/api/v1/ecommerce/products/featured')
        categories = await client.get('/api/v1/ecommerce/products/categories')

        assert [p['slug'] for p in featured.json()['data']] == ['mechanical-keyboard']
        assert categories.json()['data'] == [
            {'category': 'electronics', 'count': 1},
            {'category': 'other', 'count': 1},
        ]

    @pytest.mark.asyncio
    async def test_get_by_slug(self, client: AsyncClient, product):
        response = await client.get('/api/v1/ecommerce/products/mechanical-keyboard')

        assert response.status_code == 200
        data = response.json()['data']
        assert data['id'] == product.id
        assert data['reviews'] == []
        assert data['averageRating'] == 0
        assert data['reviewCount'] == 0

        missing = await client.get('/api/v1/ecommerce/products/does-not-exist')
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_clears_carts(self, client: AsyncClient, db_session, product, auth_headers, admin_auth_headers):
        await add_to_cart(client, auth_headers, product.id)

        response = await client.delete(f'/api/v1/ecommerce/products/{product.id}', headers=admin_auth_headers)

        assert response.status_code == 200
        remaining = (await db_session.execute(select(CartItem))).unique().scalars().all()
        assert remaining == []


class TestCart:

    @pytest.mark.asyncio
    async def test_add_merges_quantities(self, client: AsyncClient, product, auth_headers):
        first = await add_to_cart(client, auth_headers, product.id, 2)
        second = await add_to_cart(client, auth_headers, product.id, 1)

        assert first.json() == {'success': True, 'message': 'Added to cart'}
        assert second.status_code == 200

        cart = (await client.get('/api/v1/ecommerce/cart', headers=auth_headers)).json()['data']
        assert len(cart['items']) == 1
        assert cart['items'][0]['quantity'] == 3
        assert cart['items'][0]['product']['slug'] == 'mechanical-keyboard'
        assert cart['itemCount'] == 3
        assert cart['subtotal'] == 180.0

    @pytest.mark.asyncio
    async def test_cannot_exceed_stock(self, client: AsyncClient, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id, 4)

        response = await add_to_cart(client, auth_headers, product.id, 2)

        assert response.status_code == 400
        body = response.json()
        assert body['detail'] == 'Insufficient stock'
        assert body['error']['code'] == 'INSUFFICIENT_STOCK'
        assert body['error']['details']['available'] == 5

    @pytest.mark.asyncio
    async def test_invalid_quantity(self, client: AsyncClient, product, auth_headers):
        response = await add_to_cart(client, auth_headers, product.id, 0)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid quantity'

    @pytest.mark.asyncio
    async def test_inactive_product(self, client: AsyncClient, db_session, product, auth_headers):
        product.active = False
        await db_session.commit()

        response = await add_to_cart(client, auth_headers, product.id)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_and_remove(self, client: AsyncClient, product, auth_headers, other_auth_headers):
        await add_to_cart(client, auth_headers, product.id)
        cart = (await client.get('/api/v1/ecommerce/cart', headers=auth_headers)).json()['data']
        item_id = cart['items'][0]['id']

        stranger = await client.put(f'/api/v1/ecommerce/cart/{item_id}', headers=other_auth_headers, json={'quantity': 2})
        assert stranger.status_code == 404
        assert stranger.json()['detail'] == 'Cart item not found'

        too_many = await client.put(f'/api/v1/ecommerce/cart/{item_id}', headers=auth_headers, json={'quantity': 6})
        assert too_many.status_code == 400

        updated = await client.put(f'/api/v1/ecommerce/cart/{item_id}', headers=auth_headers, json={'quantity': 4})
        assert updated.json()['message'] == 'Cart updated'

        removed = await client.delete(f'/api/v1/ecommerce/cart/{item_id}', headers=auth_headers)
        assert removed.json()['message'] == 'Item removed from cart'

        cart = (await client.get('/api/v1/ecommerce/cart', headers=auth_headers)).json()['data']
        assert cart == {'items': [], 'subtotal': 0, 'itemCount': 0}

    @pytest.mark.asyncio
    async def test_clear(self, client: AsyncClient, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id)

        response = await client.delete('/api/v1/ecommerce/cart', headers=auth_headers)

        assert response.json()['message'] == 'Cart cleared'
        cart = (await client.get('/api/v1/ecommerce/cart', headers=auth_headers)).json()['data']
        assert cart['items'] == []


class TestOrders:

    @pytest.mark.asyncio
    async def test_checkout(self, client: AsyncClient, db_session, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id, 2)

        response = await checkout(client, auth_headers, notes='Leave at the door')

        assert response.status_code == 201
        order = response.json()['data']
        assert order['orderNumber'].startswith('ORD-')
        assert order['status'] == 'pending'
        assert order['paymentStatus'] == 'pending'
        assert order['subtotal'] == 120.0
        assert order['tax'] == 12.0
        assert order['shipping'] == 0.0
        assert order['total'] == 132.0
        assert order['shippingAddress']['postalCode'] == '560001'
        assert order['items'] == [{
            'id': order['items'][0]['id'],
            'productId': product.id,
            'productName': 'Mechanical Keyboard',
            'productImage': None,
            'price': 60.0,
            'quantity': 2,
            'total': 120.0,
        }]

        assert await stock_of(db_session, product.id) == 3
        cart = (await client.get('/api/v1/ecommerce/cart', headers=auth_headers)).json()['data']
        assert cart['items'] == []

    @pytest.mark.asyncio
    async def test_small_order_pays_shipping(self, client: AsyncClient, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id, 1)

        order = (await checkout(client, auth_headers)).json()['data']

        assert order['shipping'] == 10.0
        assert order['total'] == 76.0

    @pytest.mark.asyncio
    async def test_requires_address_and_payment(self, client: AsyncClient, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id)

        response = await checkout(client, auth_headers, paymentMethod=None)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Shipping address and payment method are required'

    @pytest.mark.asyncio
    async def test_empty_cart(self, client: AsyncClient, auth_headers):
        response = await checkout(client, auth_headers)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Cart is empty'

    @pytest.mark.asyncio
    async def test_stock_rechecked_at_checkout(self, client: AsyncClient, db_session, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id, 3)
        product.stock = 1
        await db_session.commit()

        response = await checkout(client, auth_headers)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Insufficient stock for Mechanical Keyboard'
        assert await stock_of(db_session, product.id) == 1

    @pytest.mark.asyncio
    async def test_cancel_restores_stock(self, client: AsyncClient, db_session, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id, 2)
        order = (await checkout(client, auth_headers)).json()['data']

        cancelled = await client.post(f"/api/v1/ecommerce/orders/{order['id']}/cancel", headers=auth_headers)

        assert cancelled.status_code == 200
        assert cancelled.json()['data']['status'] == 'cancelled'
        assert await stock_of(db_session, product.id) == 5

        again = await client.post(f"/api/v1/ecommerce/orders/{order['id']}/cancel", headers=auth_headers)
        assert again.status_code == 400
        assert again.json()['detail'] == 'Cannot cancel this order'

    @pytest.mark.asyncio
    async def test_shipped_order_cannot_be_cancelled(self, client: AsyncClient, product, auth_headers, admin_auth_headers):
        await add_to_cart(client, auth_headers, product.id)
        order = (await checkout(client, auth_headers)).json()['data']

        shipped = await client.put(f"/api/v1/ecommerce/orders/{order['id']}/status", headers=admin_auth_headers, json={
            'status': 'shipped', 'paymentStatus': 'completed',
        })
        assert shipped.json()['data']['status'] == 'shipped'
        assert shipped.json()['data']['paymentStatus'] == 'completed'

        response = await client.post(f"/api/v1/ecommerce/orders/{order['id']}/cancel", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_visibility(self, client: AsyncClient, product, auth_headers, other_auth_headers, admin_auth_headers):
        await add_to_cart(client, auth_headers, product.id)
        order = (await checkout(client, auth_headers)).json()['data']

        mine = await client.get('/api/v1/ecommerce/orders', headers=auth_headers)
        theirs = await client.get('/api/v1/ecommerce/orders', headers=other_auth_headers)
        admin = await client.get('/api/v1/ecommerce/orders', headers=admin_auth_headers)

        assert mine.json()['data']['total'] == 1
        assert theirs.json()['data']['total'] == 0
        assert admin.json()['data']['total'] == 1

        assert (await client.get(f"/api/v1/ecommerce/orders/{order['id']}", headers=other_auth_headers)).status_code == 404
        assert (await client.get(f"/api/v1/ecommerce/orders/{order['id']}", headers=admin_auth_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_status_update_requires_admin(self, client: AsyncClient, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id)
        order = (await checkout(client, auth_headers)).json()['data']

        response = await client.put(f"/api/v1/ecommerce/orders/{order['id']}/status", headers=auth_headers, json={
            'status': 'delivered',
        })

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_connection_drop_mid_checkout_keeps_cart(
        self, client: AsyncClient, db_session, product, auth_headers, monkeypatch
    ):
        await add_to_cart(client, auth_headers, product.id, 2)

        original_execute = AsyncSession.execute
        cart_deletes = []

        async def drop_first_cart_delete(session, statement, *args, **kwargs):
            if isinstance(statement, Delete):
                cart_deletes.append(statement)
                if len(cart_deletes) == 1:
                    raise OperationalError(
                        str(statement), {}, ConnectionResetError(104, 'Connection reset by peer')
                    )
            return await original_execute(session, statement, *args, **kwargs)

        monkeypatch.setattr(AsyncSession, 'execute', drop_first_cart_delete)

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url='http://test') as raw_client:
            response = await checkout(raw_client, auth_headers)

        monkeypatch.undo()

        assert response.status_code == 500
        assert len(cart_deletes) == 1

        db_session.expunge_all()
        orders = await db_session.execute(select(func.count(Order.id)))
        cart = await db_session.execute(select(CartItem.quantity).where(CartItem.product_id == product.id))
        assert orders.scalar() == 0
        assert cart.scalars().all() == [2]
        assert await stock_of(db_session, product.id) == 5


class TestStockUpdates:

    @pytest.mark.asyncio
    async def test_decrement_applies_to_current_stock(self, client: AsyncClient, db_session, product, auth_headers):
        # product was loaded with stock 5; another checkout sells 2 meanwhile
        await add_to_cart(client, auth_headers, product.id, 2)
        assert (await checkout(client, auth_headers)).status_code == 201
        assert product.stock == 5

        await take_stock(db_session, product, 1)
        await db_session.commit()

        assert await stock_of(db_session, product.id) == 2

    @pytest.mark.asyncio
    async def test_never_goes_below_zero(self, client: AsyncClient, db_session, product, auth_headers):
        await add_to_cart(client, auth_headers, product.id, 2)
        await checkout(client, auth_headers)

        with pytest.raises(InsufficientStockError) as exc_info:
            await take_stock(db_session, product, 4)
        await db_session.rollback()

        assert exc_info.value.details['available'] == 3
        assert await stock_of(db_session, product.id) == 3


class TestWishlist:

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, client: AsyncClient, product, auth_headers):
        first = await client.post('/api/v1/ecommerce/wishlist/add', headers=auth_headers, json={'productId': product.id})
        second = await client.post('/api/v1/ecommerce/wishlist/add', headers=auth_headers, json={'productId': product.id})

        assert first.status_code == 201
        assert first.json()['message'] == 'Added to wishlist'
        assert second.status_code == 200
        assert second.json()['message'] == 'Already in wishlist'
        assert second.json()['data']['id'] == first.json()['data']['id']

        wishlist = await client.get('/api/v1/ecommerce/wishlist', headers=auth_headers)
        assert [w['product']['slug'] for w in wishlist.json()['data']] == ['mechanical-keyboard']

    @pytest.mark.asyncio
    async def test_remove(self, client: AsyncClient, product, auth_headers):
        await client.post('/api/v1/ecommerce/wishlist/add', headers=auth_headers, json={'productId': product.id})

        response = await client.delete(f'/api/v1/ecommerce/wishlist/{product.id}', headers=auth_headers)

        assert response.json()['message'] == 'Removed from wishlist'
        wishlist = await client.get('/api/v1/ecommerce/wishlist', headers=auth_headers)
        assert wishlist.json()['data'] == []

    @pytest.mark.asyncio
    async def test_unknown_product(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/ecommerce/wishlist/add', headers=auth_headers, json={'productId': 'nope'})

        assert response.status_code == 404


class TestReviews:

    async def _review(self, client, headers, product_id, **overrides):
        payload = {'productId': product_id, 'rating': 4, 'title': 'Clicky', 'comment': 'Great switches'}
        payload.update(overrides)
        return await client.post('/api/v1/ecommerce/reviews', headers=headers, json=payload)

    @pytest.mark.asyncio
    async def test_unverified_review(self, client: AsyncClient, product, test_user, auth_headers):
        response = await self._review(client, auth_headers, product.id)

        assert response.status_code == 201
        review = response.json()['data']
        assert review['verified'] is False
        assert review['userName'] == test_user.name

        detail = (await client.get('/api/v1/ecommerce/products/mechanical-keyboard')).json()['data']
        assert detail['reviewCount'] == 1
        assert detail['averageRating'] == 4.0

    @pytest.mark.asyncio
    async def test_verified_after_delivery(self, client: AsyncClient, product, auth_headers, admin_auth_headers):
        await add_to_cart(client, auth_headers, product.id)
        order = (await checkout(client, auth_headers)).json()['data']
        await client.put(f"/api/v1/ecommerce/orders/{order['id']}/status", headers=admin_auth_headers, json={
            'status': 'delivered',
        })

        response = await self._review(client, auth_headers, product.id)

        assert response.json()['data']['verified'] is True

    @pytest.mark.asyncio
    async def test_one_review_per_product(self, client: AsyncClient, product, auth_headers):
        await self._review(client, auth_headers, product.id)

        response = await self._review(client, auth_headers, product.id, rating=5)

        assert response.status_code == 400
        assert response.json()['detail'] == 'You have already reviewed this product'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('rating', [0, 6])
    async def test_rating_bounds(self, client: AsyncClient, product, auth_headers, rating):
        response = await self._review(client, auth_headers, product.id, rating=rating)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Rating must be between 1 and 5'

    @pytest.mark.asyncio
    async def test_update_and_delete_permissions(
        self, client: AsyncClient, product, auth_headers, other_auth_headers, admin_auth_headers
    ):
        review_id = (await self._review(client, auth_headers, product.id)).json()['data']['id']

        stranger = await client.put(f'/api/v1/ecommerce/reviews/{review_id}', headers=other_auth_headers, json={'rating': 1})
        assert stranger.status_code == 404

        updated = await client.put(f'/api/v1/ecommerce/reviews/{review_id}', headers=auth_headers, json={'rating': 5})
        assert updated.json()['data']['rating'] == 5

        assert (await client.delete(f'/api/v1/ecommerce/reviews/{review_id}', headers=other_auth_headers)).status_code == 404
        deleted = await client.delete(f'/api/v1/ecommerce/reviews/{review_id}', headers=admin_auth_headers)
        assert deleted.json() == {'success': True, 'message': 'Review deleted'}

        listed = await client.get(f'/api/v1/ecommerce/reviews/product/{product.id}')
        assert listed.json()['data'] == []
