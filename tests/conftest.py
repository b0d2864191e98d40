"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests. Every test that touches the database gets
its own throwaway SQLite file.
"""

import os
import sys

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Must be set before config is imported anywhere
os.environ["RUNTIME_ENVIRONMENT"] = "TEST"
os.environ["ADMIN_USER_IDS"] = "admin-1"
os.environ["PAYMENT_WEBHOOK_SECRET"] = ""
os.environ["PAYMENT_GATEWAY_ACCESS_TOKEN"] = "test-access-token"
os.environ["PUBLIC_BASE_URL"] = "https://shop.example.com"
os.environ["TRANSACTION_MAX_RETRIES"] = "5"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

import db
from app import app
from enums.discount_type import DiscountType
from exceptions.payment import PaymentGatewayException, PaymentGatewayUnavailableException
from models.cart import Cart
from models.cartItem import CartItem
from models.checkout import CheckoutRequestDTO
from models.coupon import Coupon
from models.order import ShippingAddressDTO
from models.product import Product
from services.notification import EmailSender
from services.payment_gateway import PaymentGatewayClient
from utils.permission_utils import Owner
from web.dependencies import get_payment_gateway


class FakePaymentGateway(PaymentGatewayClient):
    """
    Gateway client with the HTTP layer replaced by canned answers.

    payments: payment id -> payment JSON as the gateway returns it
    fail_with: exception raised by every call (simulates outages)
    """

    def __init__(self):
        super().__init__(api_url="https://gateway.test", access_token="test-access-token", timeout_seconds=1)
        self.payments: dict[str, dict] = {}
        self.requests: list[tuple[str, str, dict | None]] = []
        self.fail_with: Exception | None = None
        self._preference_counter = 0

    async def _request(self, method: str, path: str, operation: str, payload: dict | None = None) -> dict:
        self.requests.append((method, path, payload))
        if self.fail_with is not None:
            raise self.fail_with
        if method == "POST" and path == "/checkout/preferences":
            self._preference_counter += 1
            preference_id = f"pref-{self._preference_counter}"
            return {"id": preference_id, "init_point": f"https://gateway.test/checkout/{preference_id}"}
        if method == "GET" and path.startswith("/v1/payments/"):
            payment_id = path.rsplit("/", 1)[-1]
            if payment_id not in self.payments:
                raise PaymentGatewayException(operation, "resource not found", 404)
            return self.payments[payment_id]
        raise PaymentGatewayException(operation, f"unexpected call {method} {path}", 400)

    def outage(self):
        self.fail_with = PaymentGatewayUnavailableException("fetch_payment", "timeout")


class RecordingEmailSender(EmailSender):

    def __init__(self, fail: bool = False):
        super().__init__(api_url="https://email.test", api_key="", timeout_seconds=1)
        self.sent: list[tuple[str, str, str]] = []
        self.fail = fail

    async def send_email(self, recipient: str, subject: str, html_content: str) -> None:
        if self.fail:
            raise RuntimeError("email API down")
        self.sent.append((recipient, subject, html_content))


@pytest_asyncio.fixture
async def database(tmp_path):
    """Fresh file-backed SQLite database per test (file, not :memory:, so concurrent sessions share it)."""
    db.configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront_test.db'}")
    await db.create_db_and_tables()
    yield
    await db.dispose_engine()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def owner():
    return Owner(user_id="user-1")


@pytest.fixture
def guest():
    return Owner(session_token="guest-session-token")


async def create_product(**overrides) -> str:
    values = dict(name="Mate cup", sku=None, price=5000, stock=10, track_inventory=True,
                  allow_backorder=False, weight=300, is_active=True)
    values.update(overrides)
    async with db.get_db_session() as session:
        product = Product(**values)
        session.add(product)
        await session.commit()
        return product.id


async def create_cart(owner: Owner, items: list[tuple[str, int]], price_at_add: int = 5000) -> str:
    """Add items to the owner's cart, creating the cart on first use (one cart per owner)."""
    async with db.get_db_session() as session:
        if owner.user_id:
            stmt = select(Cart).where(Cart.user_id == owner.user_id)
        else:
            stmt = select(Cart).where(Cart.session_token == owner.session_token)
        cart = (await session.execute(stmt)).scalar()
        if cart is None:
            cart = Cart(user_id=owner.user_id, session_token=None if owner.user_id else owner.session_token)
            session.add(cart)
            await session.flush()
        for product_id, quantity in items:
            session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity,
                                 price_at_add=price_at_add))
        await session.commit()
        return cart.id


async def create_coupon(**overrides) -> str:
    values = dict(code="SAVE10", discount_type=DiscountType.PERCENTAGE, discount_value=10,
                  minimum_order=5000, max_discount=5000, usage_limit=None, used_count=0, is_active=True)
    values.update(overrides)
    async with db.get_db_session() as session:
        coupon = Coupon(**values)
        session.add(coupon)
        await session.commit()
        return coupon.id


async def get_row(model, row_id):
    async with db.get_db_session() as session:
        return await session.get(model, row_id)


def make_checkout_request(cart_id: str, shipping_zone: str = "near", coupon_code: str | None = None,
                          email: str | None = "ana@example.com") -> CheckoutRequestDTO:
    return CheckoutRequestDTO(
        cart_id=cart_id,
        shipping_address=ShippingAddressDTO(
            first_name="Ana",
            last_name="Perez",
            address1="Av. Corrientes 1234",
            address2="5B",
            city="Buenos Aires",
            province="CABA",
            postal_code="C1043",
            country="ar",
            phone="+5491122334455",
            email=email,
        ),
        shipping_zone=shipping_zone,
        coupon_code=coupon_code,
    )


@pytest_asyncio.fixture
async def client(database, gateway):
    """HTTP client against the app with the fake gateway injected (lifespan not run)."""
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
