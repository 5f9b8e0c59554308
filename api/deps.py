from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from models.order import Order
from models.user import AuthState
from services.container import AppContainer
from utils.errors import AuthRequiredError, OrderNotFoundError

from api.errors import to_http_exception


def get_container(request: Request) -> AppContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Storefront service is starting up")
    return container


def get_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_token(token: Optional[str] = Depends(get_token)) -> str:
    if not token:
        raise to_http_exception(AuthRequiredError("Please sign in to continue."))
    return token


async def get_optional_user(
    token: Optional[str] = Depends(get_token),
    container: AppContainer = Depends(get_container),
) -> Optional[AuthState]:
    if not token:
        return None
    try:
        return await container.identity.current_user(token)
    except AuthRequiredError:
        return None


async def get_current_user(user: Optional[AuthState] = Depends(get_optional_user)) -> AuthState:
    if user is None:
        raise to_http_exception(AuthRequiredError("Please sign in to continue."))
    return user


async def load_owned_order(order_id: str, user: AuthState, container: AppContainer) -> Order:
    order = await container.orders.get_order(order_id)
    if order.user_id != user.user_id:
        # other users' orders are indistinguishable from missing ones
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order
