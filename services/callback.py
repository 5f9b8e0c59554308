import logging
from collections import OrderedDict
from typing import Mapping, Optional

from models.payment import CallbackOutcome, CallbackState
from services.confirmation import ConfirmationScheduler
from services.gateway import PaymentGatewayClient
from utils.errors import StorefrontError

logger = logging.getLogger(__name__)

SUCCESS_PATH = "/payment-success"
RETRY_PATH = "/checkout"

INVALID_RESPONSE_MESSAGE = "Invalid payment response"
VERIFICATION_FAILED_MESSAGE = "Payment verification failed"
VERIFICATION_ERROR_MESSAGE = "Failed to verify payment status"

# callback states kept for polling; the oldest orders are forgotten first
MAX_TRACKED_ORDERS = 10_000


class PaymentCallbackVerifier:
    """Handles the provider's redirect back into the storefront.

    Safe to call repeatedly for the same transaction (page reloads): the
    gateway decides the outcome every time and at most one confirmation per
    order is pending.
    """

    def __init__(self, gateway: PaymentGatewayClient, scheduler: ConfirmationScheduler,
                 confirmation_delay_seconds: float = 3.0, max_tracked_orders: int = MAX_TRACKED_ORDERS):
        self._gateway = gateway
        self._scheduler = scheduler
        self._delay = confirmation_delay_seconds
        self._max_tracked = max_tracked_orders
        self._states: "OrderedDict[str, CallbackState]" = OrderedDict()

    def status(self, order_id: str) -> Optional[CallbackState]:
        return self._states.get(order_id)

    def _record(self, order_id: str, state: CallbackState) -> None:
        self._states[order_id] = state
        self._states.move_to_end(order_id)
        while len(self._states) > self._max_tracked:
            self._states.popitem(last=False)

    def _failed(self, message: str, order_id: Optional[str], transaction_id: Optional[str]) -> CallbackOutcome:
        if order_id:
            self._record(order_id, CallbackState.FAILED)
        return CallbackOutcome(
            state=CallbackState.FAILED,
            order_id=order_id,
            transaction_id=transaction_id,
            message=message,
            next_path=RETRY_PATH,
        )

    async def verify(self, params: Mapping[str, str]) -> CallbackOutcome:
        transaction_id = params.get("transactionId")
        order_id = params.get("orderId")
        if not transaction_id or not order_id:
            logger.warning(f"Payment callback missing parameters: {sorted(params.keys())}")
            return self._failed(INVALID_RESPONSE_MESSAGE, order_id or None, transaction_id or None)

        self._record(order_id, CallbackState.VERIFYING)
        try:
            result = await self._gateway.verify(transaction_id)
        except StorefrontError as e:
            logger.error(f"Verification of transaction {transaction_id} for order {order_id} failed: {e.message}")
            return self._failed(VERIFICATION_ERROR_MESSAGE, order_id, transaction_id)

        if not result.success:
            logger.warning(f"Gateway reports transaction {transaction_id} unpaid: {result.message}")
            return self._failed(result.message or VERIFICATION_FAILED_MESSAGE, order_id, transaction_id)

        try:
            await self._scheduler.schedule(order_id, self._delay)
        except StorefrontError as e:
            # nothing will confirm the order; reloading the callback tries again
            logger.error(f"Could not schedule confirmation of order {order_id}: {e.message}")
            return self._failed(VERIFICATION_ERROR_MESSAGE, order_id, transaction_id)

        self._record(order_id, CallbackState.VERIFIED)
        logger.info(f"Transaction {transaction_id} verified for order {order_id}, amount {result.amount}")
        return CallbackOutcome(
            state=CallbackState.VERIFIED,
            order_id=order_id,
            transaction_id=transaction_id,
            amount=result.amount,
            message="Your payment has been processed successfully.",
            next_path=SUCCESS_PATH,
        )
