import asyncio
import logging
from typing import Awaitable, Callable, Dict

from temporalio.client import Client
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError

from utils.errors import NetworkError, OrderNotFoundError, StorefrontError
from workflows.payment_confirmation_workflow import PaymentConfirmationWorkflow

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], Awaitable[object]]


def confirmation_workflow_id(order_id: str) -> str:
    return f"payment-confirmation-{order_id}"


class ConfirmationScheduler:
    """Runs the order confirmation some time after a verified callback.

    At most one continuation per order is pending at a time.
    """

    async def schedule(self, order_id: str, delay_seconds: float) -> bool:
        """Returns False when a continuation for the order is already pending."""
        raise NotImplementedError

    async def cancel(self, order_id: str) -> bool:
        raise NotImplementedError

    async def shutdown(self) -> None:
        pass


class LocalConfirmationScheduler(ConfirmationScheduler):
    def __init__(self, confirm: ConfirmFn):
        self._confirm = confirm
        self._pending: Dict[str, asyncio.Task] = {}

    def is_pending(self, order_id: str) -> bool:
        return order_id in self._pending

    async def schedule(self, order_id: str, delay_seconds: float) -> bool:
        if order_id in self._pending:
            logger.info(f"Confirmation for order {order_id} already scheduled")
            return False
        task = asyncio.create_task(self._run(order_id, delay_seconds), name=confirmation_workflow_id(order_id))
        self._pending[order_id] = task
        task.add_done_callback(lambda t: self._forget(order_id, t))
        logger.info(f"Confirmation for order {order_id} scheduled in {delay_seconds}s")
        return True

    def _forget(self, order_id: str, task: asyncio.Task) -> None:
        if self._pending.get(order_id) is task:
            del self._pending[order_id]

    async def _run(self, order_id: str, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        try:
            await self._confirm(order_id)
        except OrderNotFoundError as e:
            logger.warning(f"Skipped confirmation for order {order_id}: {e.message}")
        except StorefrontError as e:
            # the order stays awaiting payment; reloading the callback retries
            logger.error(f"Confirmation for order {order_id} failed: {e.message}")

    async def cancel(self, order_id: str) -> bool:
        task = self._pending.pop(order_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info(f"Confirmation for order {order_id} cancelled")
        return True

    async def shutdown(self) -> None:
        tasks = list(self._pending.values())
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Dropped {len(tasks)} pending confirmations on shutdown")


class TemporalConfirmationScheduler(ConfirmationScheduler):
    def __init__(self, client: Client, task_queue: str):
        self._client = client
        self._task_queue = task_queue

    async def schedule(self, order_id: str, delay_seconds: float) -> bool:
        workflow_id = confirmation_workflow_id(order_id)
        try:
            await self._client.start_workflow(
                PaymentConfirmationWorkflow.run,
                {"order_id": order_id, "delay_seconds": delay_seconds},
                id=workflow_id,
                task_queue=self._task_queue,
            )
        except WorkflowAlreadyStartedError:
            logger.info(f"Confirmation workflow {workflow_id} already running")
            return False
        except RPCError as e:
            logger.error(f"Could not start confirmation workflow {workflow_id}: {e}")
            raise NetworkError(f"Confirmation scheduling unavailable: {e}") from e
        logger.info(f"Started confirmation workflow {workflow_id}")
        return True

    async def cancel(self, order_id: str) -> bool:
        handle = self._client.get_workflow_handle(confirmation_workflow_id(order_id))
        try:
            await handle.cancel()
        except RPCError as e:
            logger.warning(f"Could not cancel confirmation for order {order_id}: {e}")
            return False
        return True
