import uuid

import pytest
from temporalio.client import WorkflowFailureError
from temporalio.exceptions import CancelledError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from activities.order_activities import OrderActivities
from services.confirmation import confirmation_workflow_id
from services.order_lifecycle import ORDERS_COLLECTION, OrderLifecycleController
from workflows.payment_confirmation_workflow import PaymentConfirmationWorkflow

TASK_QUEUE = "payment-confirmation-test"


class CountingController(OrderLifecycleController):
    def __init__(self, store, storefront):
        super().__init__(store, storefront)
        self.confirm_calls = 0

    async def confirm_payment(self, order_id, payment_method="easypaisa"):
        self.confirm_calls += 1
        return await super().confirm_payment(order_id, payment_method)


@pytest.fixture
async def env():
    async with await WorkflowEnvironment.start_time_skipping() as workflow_env:
        yield workflow_env


@pytest.fixture
def controller(store, storefront) -> CountingController:
    return CountingController(store, storefront)


def _worker(env, controller) -> Worker:
    return Worker(
        env.client,
        task_queue=TASK_QUEUE,
        workflows=[PaymentConfirmationWorkflow],
        activities=OrderActivities(controller).all(),
    )


async def test_workflow_confirms_order_after_delay(env, controller, store, filled_cart, buyer):
    order = await controller.create_order(filled_cart, buyer)

    async with _worker(env, controller):
        result = await env.client.execute_workflow(
            PaymentConfirmationWorkflow.run,
            {"order_id": order.id, "delay_seconds": 3},
            id=confirmation_workflow_id(order.id),
            task_queue=TASK_QUEUE,
        )

    assert result == {"order_id": order.id, "status": "CONFIRMED"}
    assert (await store.get_document(ORDERS_COLLECTION, order.id))["status"] == "paid"
    assert filled_cart.is_empty()


async def test_workflow_unknown_order_is_not_retried(env, controller):
    order_id = f"missing-{uuid.uuid4().hex}"

    async with _worker(env, controller):
        result = await env.client.execute_workflow(
            PaymentConfirmationWorkflow.run,
            {"order_id": order_id, "delay_seconds": 1},
            id=confirmation_workflow_id(order_id),
            task_queue=TASK_QUEUE,
        )

    assert result == {"order_id": order_id, "status": "FAILED"}
    assert controller.confirm_calls == 1


async def test_workflow_cancelled_during_delay_leaves_order_pending(env, controller, store, filled_cart, buyer):
    order = await controller.create_order(filled_cart, buyer)

    async with _worker(env, controller):
        handle = await env.client.start_workflow(
            PaymentConfirmationWorkflow.run,
            {"order_id": order.id, "delay_seconds": 60},
            id=confirmation_workflow_id(order.id),
            task_queue=TASK_QUEUE,
        )
        assert await handle.query(PaymentConfirmationWorkflow.get_status) == "SCHEDULED"
        await handle.cancel()

        with pytest.raises(WorkflowFailureError) as excinfo:
            await handle.result()

    assert isinstance(excinfo.value.cause, CancelledError)
    assert controller.confirm_calls == 0
    assert (await store.get_document(ORDERS_COLLECTION, order.id))["status"] == "pending"
    assert not filled_cart.is_empty()
