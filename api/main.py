from fastapi import FastAPI
from typing import Optional
import asyncio
import logging

from services.container import AppContainer, build_container
from utils.config import Settings, get_settings
from utils.temporal import get_temporal_client
from worker import create_worker

from api.auth import router as auth_router
from api.cart import router as cart_router
from api.catalog import router as catalog_router
from api.orders import router as orders_router
from api.payments import router as payments_router
from api.profile import router as profile_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


async def _start_services(app: FastAPI, settings: Settings) -> None:
    if settings.confirmation_backend != "temporal":
        app.state.container = build_container(settings)
        return

    try:
        temporal_client = await get_temporal_client(settings)
        logger.info(f"Connected to Temporal server at {settings.temporal_address} in namespace '{settings.temporal_namespace}'")
    except Exception as e:
        # confirmations still run, just not durably
        logger.error(f"Failed to connect to Temporal: {e}; falling back to local confirmations")
        app.state.container = build_container(settings.model_copy(update={"confirmation_backend": "local"}))
        return

    container = build_container(settings, temporal_client=temporal_client)
    app.state.container = container
    worker = create_worker(temporal_client, container)
    app.state.worker_task = asyncio.create_task(worker.run(), name="payment-confirmation-worker")
    logger.info(f"Embedded confirmation worker polling '{settings.confirmation_task_queue}'")


def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Storefront Checkout")

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(catalog_router, tags=["catalog"])
    app.include_router(cart_router, prefix="/cart", tags=["cart"])
    app.include_router(orders_router, tags=["orders"])
    app.include_router(payments_router, prefix="/payment-callback", tags=["payments"])
    app.include_router(profile_router, prefix="/profile", tags=["profile"])

    app.state.container = container
    app.state.worker_task = None

    @app.on_event("startup")
    async def startup_event():
        if app.state.container is None:
            await _start_services(app, settings)

    @app.on_event("shutdown")
    async def shutdown_event():
        worker_task = app.state.worker_task
        if worker_task:
            worker_task.cancel()
            await asyncio.gather(worker_task, return_exceptions=True)
        if app.state.container:
            await app.state.container.close()
        logger.info("Storefront shutdown complete")

    return app


configure_logging(get_settings())
app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run("api.main:app", host=settings.api_host, port=settings.api_port, reload=True)
