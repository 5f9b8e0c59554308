import json

import httpx
import pytest

from services.store import HttpDocumentStore, InMemoryDocumentStore
from utils.errors import DocumentNotFoundError, StoreUnavailableError


class FakeDocumentApi:
    def __init__(self):
        self.documents = {"orders": {"o1": {"status": "pending"}}}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")[1:]  # drop the "v1" prefix
        collection = parts[0]
        docs = self.documents.setdefault(collection, {})
        if len(parts) == 1:
            if request.method == "GET":
                return httpx.Response(200, json={"documents": [{"id": k, **v} for k, v in docs.items()]})
            new_id = f"n{len(docs) + 1}"
            docs[new_id] = json.loads(request.content)
            return httpx.Response(201, json={"id": new_id})
        doc_id = parts[1]
        if doc_id not in docs:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "GET":
            return httpx.Response(200, json={"id": doc_id, **docs[doc_id]})
        if request.method == "PATCH":
            docs[doc_id].update(json.loads(request.content))
            return httpx.Response(200, json={"id": doc_id, **docs[doc_id]})
        del docs[doc_id]
        return httpx.Response(204)


@pytest.fixture
def api() -> FakeDocumentApi:
    return FakeDocumentApi()


@pytest.fixture
def http_store(api) -> HttpDocumentStore:
    return HttpDocumentStore("https://store.test/v1", api_key="key-1", transport=httpx.MockTransport(api.handler))


async def test_http_store_round_trip(http_store, api):
    new_id = await http_store.create_document("orders", {"status": "pending", "total_amount": 10})
    await http_store.update_document("orders", new_id, {"status": "paid"})

    assert await http_store.get_document("orders", new_id) == {"status": "paid", "total_amount": 10}
    listed = dict(await http_store.list_documents("orders"))
    assert set(listed) == {"o1", new_id}
    assert api.requests[0].headers["Authorization"] == "Bearer key-1"

    await http_store.delete_document("orders", new_id)
    assert await http_store.get_document("orders", new_id) is None


async def test_http_store_update_missing_document(http_store):
    with pytest.raises(DocumentNotFoundError):
        await http_store.update_document("orders", "nope", {"status": "paid"})


async def test_http_store_transport_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    store = HttpDocumentStore("https://store.test/v1", transport=httpx.MockTransport(handler))
    with pytest.raises(StoreUnavailableError):
        await store.create_document("orders", {"status": "pending"})


async def test_http_store_server_error():
    store = HttpDocumentStore("https://store.test/v1",
                              transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))
    with pytest.raises(StoreUnavailableError):
        await store.update_document("orders", "o1", {"status": "paid"})


async def test_in_memory_store_returns_copies():
    store = InMemoryDocumentStore()
    doc_id = await store.create_document("orders", {"items": [1]})

    fetched = await store.get_document("orders", doc_id)
    fetched["items"].append(2)

    assert (await store.get_document("orders", doc_id))["items"] == [1]


async def test_in_memory_store_outage():
    store = InMemoryDocumentStore()
    store.available = False
    with pytest.raises(StoreUnavailableError):
        await store.list_documents("orders")


def _store_answering(response: httpx.Response) -> HttpDocumentStore:
    return HttpDocumentStore("https://store.test/v1", transport=httpx.MockTransport(lambda r: response))


@pytest.mark.parametrize("response", [
    httpx.Response(404, json={"error": "no such collection"}),
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, json={"created": True}),
    httpx.Response(200, json=["n1"]),
])
async def test_http_store_create_without_id_is_unavailable(response):
    with pytest.raises(StoreUnavailableError):
        await _store_answering(response).create_document("orders", {"status": "pending"})


@pytest.mark.parametrize("response", [
    httpx.Response(404, json={"error": "no such collection"}),
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, json={"documents": [{"status": "pending"}]}),
])
async def test_http_store_list_bad_response_is_unavailable(response):
    with pytest.raises(StoreUnavailableError):
        await _store_answering(response).list_documents("orders")


async def test_http_store_get_unreadable_document_is_unavailable():
    with pytest.raises(StoreUnavailableError):
        await _store_answering(httpx.Response(200, text="oops")).get_document("orders", "o1")


async def test_http_store_missing_document_reads_as_none(http_store):
    assert await http_store.get_document("orders", "nope") is None
    await http_store.delete_document("orders", "nope")
