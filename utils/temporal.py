from temporalio.client import Client

from utils.config import Settings


async def get_temporal_client(settings: Settings) -> Client:
    """
    Connects to Temporal using the configured address and namespace
    """
    client = await Client.connect(settings.temporal_address, namespace=settings.temporal_namespace)
    return client
