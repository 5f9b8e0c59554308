import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import httpx
from temporalio.client import Client

from services.callback import PaymentCallbackVerifier
from services.catalog import CatalogService
from services.confirmation import (
    ConfirmationScheduler,
    LocalConfirmationScheduler,
    TemporalConfirmationScheduler,
)
from services.gateway import PaymentGatewayClient
from services.identity import IdentityProvider, InMemoryIdentityProvider
from services.order_lifecycle import OrderLifecycleController
from services.profile import ProfileService
from services.store import DocumentStore, HttpDocumentStore, InMemoryDocumentStore
from services.storefront import StorefrontState
from utils.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    settings: Settings
    store: DocumentStore
    identity: IdentityProvider
    storefront: StorefrontState
    catalog: CatalogService
    orders: OrderLifecycleController
    gateway: PaymentGatewayClient
    scheduler: ConfirmationScheduler
    verifier: PaymentCallbackVerifier
    profile: ProfileService
    _unsubscribers: List[Callable[[], None]] = field(default_factory=list)

    async def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        await self.scheduler.shutdown()
        await self.gateway.close()
        await self.store.close()


def build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "http":
        if not settings.store_api_url:
            raise ValueError("STORE_API_URL is required when STORE_BACKEND=http")
        return HttpDocumentStore(settings.store_api_url, settings.store_api_key)
    return InMemoryDocumentStore()


def build_container(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    identity: Optional[IdentityProvider] = None,
    gateway_transport: Optional[httpx.AsyncBaseTransport] = None,
    temporal_client: Optional[Client] = None,
) -> AppContainer:
    store = store or build_store(settings)
    identity = identity or InMemoryIdentityProvider()
    storefront = StorefrontState()
    orders = OrderLifecycleController(store, storefront)

    gateway = PaymentGatewayClient(
        base_url=settings.easypaisa_api_url,
        merchant_id=settings.easypaisa_merchant_id,
        secret_key=settings.easypaisa_secret_key,
        callback_url=settings.callback_url,
        timeout=settings.gateway_timeout_seconds,
        transport=gateway_transport,
    )

    if settings.confirmation_backend == "temporal":
        if temporal_client is None:
            raise ValueError("A Temporal client is required when CONFIRMATION_BACKEND=temporal")
        scheduler: ConfirmationScheduler = TemporalConfirmationScheduler(
            temporal_client, settings.confirmation_task_queue
        )
    else:
        scheduler = LocalConfirmationScheduler(orders.confirm_payment)

    container = AppContainer(
        settings=settings,
        store=store,
        identity=identity,
        storefront=storefront,
        catalog=CatalogService(store),
        orders=orders,
        gateway=gateway,
        scheduler=scheduler,
        verifier=PaymentCallbackVerifier(gateway, scheduler, settings.payment_confirmation_delay_seconds),
        profile=ProfileService(identity, orders),
    )
    # the storefront follows sign-outs from here on
    container._unsubscribers.append(storefront.follow(identity.stream))
    logger.info(
        f"Storefront wired: store={settings.store_backend}, confirmations={settings.confirmation_backend}"
    )
    return container
