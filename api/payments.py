from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel
from typing import Optional
import logging

from models.payment import CallbackOutcome, CallbackState
from models.user import AuthState
from services.container import AppContainer
from utils.errors import StorefrontError

from api.deps import get_container, get_current_user, load_owned_order
from api.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


class CallbackStatusResponse(BaseModel):
    order_id: str
    state: Optional[CallbackState]


@router.get("", response_model=CallbackOutcome)
async def payment_callback(request: Request, container: AppContainer = Depends(get_container)):
    """Landing point of the provider's redirect (``?transactionId=...&orderId=...``).

    Answers with the terminal state and where the UI goes next. Reloading the
    page verifies again.
    """
    return await container.verifier.verify(request.query_params)


@router.get("/status", response_model=CallbackStatusResponse)
async def payment_callback_status(
    order_id: str = Query(..., alias="orderId"),
    container: AppContainer = Depends(get_container),
):
    return CallbackStatusResponse(order_id=order_id, state=container.verifier.status(order_id))


@router.delete("/confirmation", status_code=status.HTTP_204_NO_CONTENT)
async def drop_confirmation(
    order_id: str = Query(..., alias="orderId"),
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    """Called when the callback page unloads before the confirmation ran.

    Only the buyer who placed the order may drop its confirmation. The order
    stays pending; opening the callback page again reschedules it.
    """
    try:
        await load_owned_order(order_id, user, container)
    except StorefrontError as e:
        raise to_http_exception(e)
    if not await container.scheduler.cancel(order_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "No pending confirmation for this order", "order_id": order_id},
        )
    logger.info(f"Confirmation of order {order_id} dropped by the client")
