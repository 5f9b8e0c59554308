from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import List
import logging

from models.cart import Cart
from models.user import AuthState
from services.container import AppContainer
from utils.errors import StorefrontError, ValidationError

from api.deps import get_container, get_current_user
from api.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


class CartItemAdd(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the line")


class CartLineView(BaseModel):
    product_id: str
    name: str
    price: float
    quantity: int
    subtotal: float


class CartView(BaseModel):
    items: List[CartLineView]
    item_count: int
    total: float


def _view(cart: Cart) -> CartView:
    return CartView(
        items=[
            CartLineView(
                product_id=line.product.id,
                name=line.product.name,
                price=line.product.price,
                quantity=line.quantity,
                subtotal=line.product.price * line.quantity,
            )
            for line in cart.lines.values()
        ],
        item_count=cart.item_count(),
        total=cart.total(),
    )


@router.get("", response_model=CartView)
async def get_cart(user: AuthState = Depends(get_current_user), container: AppContainer = Depends(get_container)):
    return _view(container.storefront.cart_for(user.user_id))


@router.post("/items", response_model=CartView)
async def add_item(
    item: CartItemAdd,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    try:
        product = await container.catalog.get_product(item.product_id)
    except StorefrontError as e:
        raise to_http_exception(e)
    cart = container.storefront.cart_for(user.user_id)
    cart.add(product, item.quantity)
    logger.info(f"User {user.user_id} added {item.quantity} x {product.id} to cart")
    return _view(cart)


@router.put("/items/{product_id}", response_model=CartView)
async def update_item(
    product_id: str,
    update: CartItemUpdate,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    cart = container.storefront.cart_for(user.user_id)
    try:
        cart.set_quantity(product_id, update.quantity)
    except KeyError:
        raise to_http_exception(ValidationError(f"Product {product_id} is not in the cart", field="product_id"))
    return _view(cart)


@router.delete("/items/{product_id}", response_model=CartView)
async def remove_item(
    product_id: str,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    cart = container.storefront.cart_for(user.user_id)
    cart.remove(product_id)
    return _view(cart)
