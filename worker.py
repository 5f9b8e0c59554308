import asyncio
import logging

from temporalio.client import Client
from temporalio.worker import Worker

from activities.order_activities import OrderActivities
from services.container import AppContainer, build_container
from utils.config import get_settings
from utils.temporal import get_temporal_client
from workflows.payment_confirmation_workflow import PaymentConfirmationWorkflow

logger = logging.getLogger(__name__)


def create_worker(client: Client, container: AppContainer) -> Worker:
    """Worker for the confirmation task queue, bound to the container's controller."""
    activities = OrderActivities(container.orders).all()
    worker = Worker(
        client,
        task_queue=container.settings.confirmation_task_queue,
        workflows=[PaymentConfirmationWorkflow],
        activities=activities,
        max_concurrent_activities=50,
    )
    logger.info(f"Confirmation worker created with {len(activities)} activities")
    return worker


async def main():
    settings = get_settings()
    if settings.store_backend != "http":
        # a standalone worker cannot see orders held in another process's memory
        logger.warning("Standalone worker running with STORE_BACKEND=memory; use the embedded API worker instead")

    logger.info(f"Connecting to Temporal at {settings.temporal_address}...")
    try:
        client = await get_temporal_client(settings)
        logger.info(f"Successfully connected to namespace: {settings.temporal_namespace}")

        container = build_container(settings, temporal_client=client)
        worker = create_worker(client, container)

        logger.info(f"Starting worker on '{settings.confirmation_task_queue}'... Press Ctrl+C to exit")
        try:
            await worker.run()
        finally:
            await container.close()
    except Exception as e:
        logger.error(f"Error in worker: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker shutdown complete")
