from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError
from datetime import timedelta
import asyncio

with workflow.unsafe.imports_passed_through():
    from activities.order_activities import OrderActivities


@workflow.defn(name="PaymentConfirmationWorkflow")
class PaymentConfirmationWorkflow:
    """Waits out the post-verification delay, then marks the order paid."""

    def __init__(self):
        self._order_id: str | None = None
        self._status: str = "SCHEDULED"
        self._confirm_retry_policy = RetryPolicy(
            initial_interval=timedelta(seconds=1),
            backoff_coefficient=2.0,
            maximum_interval=timedelta(seconds=30),
            maximum_attempts=5,
            # a missing or already settled order will not become payable
            non_retryable_error_types=["OrderNotFoundError"],
        )

    @workflow.run
    async def run(self, confirmation_input: dict) -> dict:
        self._order_id = confirmation_input["order_id"]
        delay = timedelta(seconds=float(confirmation_input.get("delay_seconds", 3)))
        workflow.logger.info(f"Confirmation for order {self._order_id} scheduled in {delay}")

        try:
            # durable timer; cancelling the workflow here drops the confirmation
            await asyncio.sleep(delay.total_seconds())
        except asyncio.CancelledError:
            workflow.logger.info(f"Confirmation for order {self._order_id} cancelled during delay")
            self._status = "CANCELLED"
            raise

        self._status = "CONFIRMING"
        try:
            order = await workflow.execute_activity_method(
                OrderActivities.confirm_order_payment,
                self._order_id,
                retry_policy=self._confirm_retry_policy,
                start_to_close_timeout=timedelta(seconds=30),
            )
        except ActivityError as e:
            workflow.logger.error(f"Confirmation for order {self._order_id} failed: {e}")
            self._status = "FAILED"
            return {"order_id": self._order_id, "status": self._status}

        self._status = "CONFIRMED"
        workflow.logger.info(f"Order {self._order_id} confirmed with status {order['status']}")
        return {"order_id": self._order_id, "status": self._status}

    @workflow.query
    def get_status(self) -> str:
        return self._status
