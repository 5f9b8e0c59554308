from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from typing import Optional
import logging

from models.order import LifecycleState, Order
from models.payment import BuyerInfo, CallbackState
from models.user import AuthState
from services.container import AppContainer
from services.gateway import parse_buyer_info
from utils.errors import AuthRequiredError, GatewayError, NetworkError, StorefrontError

from api.deps import get_container, get_current_user, get_optional_user, load_owned_order
from api.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


class CheckoutRequest(BaseModel):
    full_name: str = ""
    mobile_number: str = ""
    email: str = ""
    address: str = ""
    postal_code: str = ""
    city: str = ""


class CheckoutResponse(BaseModel):
    order_id: str
    amount: float
    payment_url: str


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str
    state: LifecycleState


@router.post("/checkout", response_model=CheckoutResponse, responses={
    303: {"description": "Redirect to the provider's payment page"},
})
async def checkout(
    request: CheckoutRequest,
    redirect: bool = Query(False, description="Answer with a redirect to the payment page"),
    user: Optional[AuthState] = Depends(get_optional_user),
    container: AppContainer = Depends(get_container),
):
    """Places a pending order for the cart and hands off to the payment provider."""
    try:
        if user is None:
            raise AuthRequiredError()
        contact: BuyerInfo = parse_buyer_info(request.model_dump())
        order = await container.orders.create_order(container.storefront.cart_for(user.user_id), user, contact)
    except StorefrontError as e:
        raise to_http_exception(e)

    try:
        session = await container.gateway.initiate(order.total_amount, contact, order.id)
    except (GatewayError, NetworkError) as e:
        # the order stays pending; the buyer can retry or cancel it
        logger.error(f"Payment initiation for order {order.id} failed: {e.message}")
        raise to_http_exception(e, order_id=order.id)
    except StorefrontError as e:
        raise to_http_exception(e, order_id=order.id)

    if redirect:
        return RedirectResponse(session.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    return CheckoutResponse(order_id=order.id, amount=session.amount, payment_url=session.redirect_url)


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    try:
        return await load_owned_order(order_id, user, container)
    except StorefrontError as e:
        raise to_http_exception(e)


@router.get("/orders/{order_id}/status", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: str,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    try:
        order = await load_owned_order(order_id, user, container)
    except StorefrontError as e:
        raise to_http_exception(e)
    return OrderStatusResponse(order_id=order_id, status=order.status.value, state=order.lifecycle_state())


@router.post("/orders/{order_id}/cancel", response_model=Order)
async def cancel_order(
    order_id: str,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    """Cancels an order the buyer has not paid yet."""
    try:
        await load_owned_order(order_id, user, container)
        if container.verifier.status(order_id) == CallbackState.VERIFIED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Payment for this order has already been verified", "order_id": order_id},
            )
        return await container.orders.cancel_payment(order_id)
    except StorefrontError as e:
        raise to_http_exception(e)
