"""
Unit Tests for request/response schemas
Tests for: camelCase aliases, comma separated lists, input validation
"""
import pytest
from pydantic import ValidationError

from nanoflows.schemas.auth import SignupRequest, CurrentUser
from nanoflows.schemas.content import HeroSlideCreate, HeroSlideResponse, AIToolCreate
from nanoflows.schemas.store import ProductCreate, ShippingAddress, OrderCreate


ADDRESS = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "postalCode": "560001",
    "country": "IN",
}


class TestSignupRequest:

    def test_name_is_stripped(self):
        signup = SignupRequest(name="  Asha  ", email="asha@example.com", password="secret1")

        assert signup.name == "Asha"

    def test_blank_name_fails(self):
        with pytest.raises(ValidationError):
            SignupRequest(name="   ", email="asha@example.com", password="secret1")

    def test_short_password_fails(self):
        with pytest.raises(ValidationError):
            SignupRequest(name="Asha", email="asha@example.com", password="123")

    def test_invalid_email_fails(self):
        with pytest.raises(ValidationError):
            SignupRequest(name="Asha", email="not-an-email", password="secret1")


class TestCurrentUser:

    def test_is_admin(self):
        admin = CurrentUser(id="1", email="a@example.com", name="A", role="admin")
        student = CurrentUser(id="2", email="s@example.com", name="S", role="user")

        assert admin.is_admin is True
        assert student.is_admin is False


class TestStoreSchemas:

    def test_accepts_camel_and_snake_case(self):
        camel = ProductCreate(name="Mug", description="Ceramic", price=9.5, comparePrice=12, category="home")
        snake = ProductCreate(name="Mug", description="Ceramic", price=9.5, compare_price=12, category="home")

        assert camel.compare_price == snake.compare_price == 12

    def test_dumps_camel_case(self):
        product = ProductCreate(name="Mug", description="Ceramic", price=9.5, category="home")

        data = product.model_dump(by_alias=True)

        assert "shortDescription" in data
        assert "comparePrice" in data

    def test_unknown_category_fails(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Mug", description="Ceramic", price=9.5, category="accessories")

    def test_negative_price_fails(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Mug", description="Ceramic", price=-1, category="home")

    def test_shipping_address_postal_code_alias(self):
        order = OrderCreate(shippingAddress=ADDRESS, paymentMethod="cod")

        assert order.shipping_address.postal_code == "560001"
        assert order.payment_method == "cod"

    @pytest.mark.parametrize("field", ["name", "phone", "city", "postalCode"])
    def test_shipping_address_requires_field(self, field):
        with pytest.raises(ValidationError):
            ShippingAddress(**{**ADDRESS, field: ""})


class TestContentSchemas:

    def test_hero_slide_defaults(self):
        slide = HeroSlideCreate(title="Launch")

        assert slide.variant == "default"
        assert slide.position == "end"
        assert slide.reference_slide_id is None

    def test_hero_slide_splits_comma_lists(self):
        slide = HeroSlideCreate(categories="AI, Web, ", trustBadges=["Fast"])

        assert slide.categories == ["AI", "Web"]
        assert slide.trust_badges == ["Fast"]

    def test_hero_slide_rejects_unknown_position(self):
        with pytest.raises(ValidationError):
            HeroSlideCreate(title="Launch", position="middle")

    def test_hero_slide_response_lists_default_empty(self):
        slide = HeroSlideResponse(id="s1", variant="default", orderIndex=0, categories=None, services=None)

        assert slide.categories == []
        assert slide.services == []
        assert slide.model_dump(by_alias=True)["orderIndex"] == 0

    def test_ai_tool_features_from_string(self):
        tool = AIToolCreate(name="Summarizer", description="x", category="Text", features="a, b")

        assert tool.features == ["a", "b"]
        assert tool.pricing_type == "free"
