import json
from typing import Callable, List, Optional

from argon2 import PasswordHasher
import httpx
import pytest

from models.cart import Cart
from models.catalog import Product
from models.user import AuthState
from services.container import build_container
from services.identity import InMemoryIdentityProvider
from services.store import InMemoryDocumentStore
from services.storefront import StorefrontState
from utils.config import Settings

PRODUCTS = {
    "p1": {"name": "MacBook Air", "price": 50000, "category": "Mac", "description": "Thin and light"},
    "p2": {"name": "ThinkPad X1", "price": 120000, "category": "Laptop", "description": "Business laptop"},
    "p3": {"name": "USB-C Hub", "price": 2500, "category": "all", "description": "Works with any computer"},
    "p4": {"name": "Gaming Tower", "price": 300000, "category": "Computer", "description": "RTX desktop"},
}

VALID_BUYER = {
    "full_name": "Ayesha Khan",
    "mobile_number": "03001234567",
    "email": "ayesha@example.com",
    "address": "12 Mall Road",
    "postal_code": "54000",
    "city": "Lahore",
}


class FakeGateway:
    """Stands in for the payment provider's HTTP API."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.initiate_response: dict = {"success": True, "paymentUrl": "https://pay.example.com/session/abc"}
        self.verify_response: dict = {"success": True, "amount": 100000}
        self.fail_transport = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path.endswith("/initiate-payment"):
            return httpx.Response(200, json=self.initiate_response)
        if request.url.path.endswith("/verify-payment"):
            return httpx.Response(200, json=self.verify_response)
        return httpx.Response(404, json={"success": False, "message": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def bodies(self, path_suffix: str) -> List[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith(path_suffix)]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        easypaisa_api_url="https://gateway.test/api",
        easypaisa_merchant_id="MERCHANT-1",
        easypaisa_secret_key="s3cret",
        app_base_url="https://shop.test",
        payment_confirmation_delay_seconds=0,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(seed={"products": PRODUCTS})


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    # minimal argon2 cost keeps sign-ups fast in tests
    return InMemoryIdentityProvider(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def storefront() -> StorefrontState:
    return StorefrontState()


@pytest.fixture
def buyer() -> AuthState:
    return AuthState(logged_in=True, user_id="u1", display_name="Ayesha", email="ayesha@example.com")


@pytest.fixture
def make_product() -> Callable[..., Product]:
    def _make(product_id: str = "p1", price: float = 50000, name: Optional[str] = None, **extra) -> Product:
        return Product(id=product_id, name=name or product_id, price=price, **extra)
    return _make


@pytest.fixture
def filled_cart(storefront, buyer, make_product) -> Cart:
    cart = storefront.cart_for(buyer.user_id)
    cart.add(make_product("p1", 50000), quantity=2)
    return cart


@pytest.fixture
def container(settings, store, identity, fake_gateway):
    return build_container(settings, store=store, identity=identity, gateway_transport=fake_gateway.transport)
