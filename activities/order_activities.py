from temporalio import activity
from temporalio.exceptions import ApplicationError

from services.order_lifecycle import OrderLifecycleController
from utils.errors import OrderNotFoundError


class OrderActivities:
    """Order store operations run by the confirmation workflow.

    Bound to the controller of the process hosting the worker.
    """

    def __init__(self, controller: OrderLifecycleController):
        self._controller = controller

    @activity.defn(name="confirm_order_payment")
    async def confirm_order_payment(self, order_id: str) -> dict:
        activity.logger.info(f"Confirming payment for order {order_id} (attempt {activity.info().attempt})")
        try:
            order = await self._controller.confirm_payment(order_id)
        except OrderNotFoundError as e:
            # retrying cannot make a missing or settled order payable
            activity.logger.error(f"Order {order_id} cannot be confirmed: {e.message}")
            raise ApplicationError(e.message, type="OrderNotFoundError", non_retryable=True) from e
        # StoreUnavailableError propagates and is retried by the workflow's policy
        activity.logger.info(f"Order {order_id} confirmed")
        return order.model_dump(mode="json")

    def all(self) -> list:
        return [self.confirm_order_payment]
