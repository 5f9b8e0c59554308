import logging
import uuid
from copy import deepcopy
from typing import Dict, List, Optional, Tuple

import httpx

from utils.errors import DocumentNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

Document = Dict[str, object]


class DocumentStore:
    """Contract of the hosted document database.

    Documents are plain dicts; ids are assigned by the store on creation.
    """

    async def list_documents(self, collection: str) -> List[Tuple[str, Document]]:
        raise NotImplementedError

    async def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        raise NotImplementedError

    async def create_document(self, collection: str, data: Document) -> str:
        raise NotImplementedError

    async def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        raise NotImplementedError

    async def delete_document(self, collection: str, document_id: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class InMemoryDocumentStore(DocumentStore):
    """Process-local store for development and tests.

    Setting ``available`` to False makes every call fail the way a
    network/backend outage would.
    """

    def __init__(self, seed: Optional[Dict[str, Dict[str, Document]]] = None):
        self._collections: Dict[str, Dict[str, Document]] = deepcopy(seed) if seed else {}
        self.available = True

    def _check_available(self, operation: str, collection: str) -> None:
        if not self.available:
            raise StoreUnavailableError(f"Document store unavailable during {operation} on '{collection}'")

    async def list_documents(self, collection: str) -> List[Tuple[str, Document]]:
        self._check_available("read", collection)
        return [(doc_id, deepcopy(doc)) for doc_id, doc in self._collections.get(collection, {}).items()]

    async def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        self._check_available("get", collection)
        document = self._collections.get(collection, {}).get(document_id)
        return deepcopy(document) if document is not None else None

    async def create_document(self, collection: str, data: Document) -> str:
        self._check_available("create", collection)
        document_id = uuid.uuid4().hex
        self._collections.setdefault(collection, {})[document_id] = deepcopy(data)
        return document_id

    async def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        self._check_available("update", collection)
        documents = self._collections.get(collection, {})
        if document_id not in documents:
            raise DocumentNotFoundError(f"Document {collection}/{document_id} not found")
        documents[document_id].update(deepcopy(fields))

    async def delete_document(self, collection: str, document_id: str) -> None:
        self._check_available("delete", collection)
        self._collections.get(collection, {}).pop(document_id, None)


class HttpDocumentStore(DocumentStore):
    """Talks to a REST document API (one resource per collection)."""

    def __init__(self, base_url: str, api_key: Optional[str] = None,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, allow_missing: bool = False, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Document store {method} {path} failed: {e}")
            raise StoreUnavailableError(f"Document store unreachable: {e}") from e
        if response.status_code == 404 and allow_missing:
            return response
        if response.status_code >= 400:
            logger.error(f"Document store {method} {path} returned {response.status_code}")
            raise StoreUnavailableError(f"Document store rejected {method} {path} ({response.status_code})")
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"Document store sent an unreadable response: {e}") from e
        if not isinstance(body, dict):
            raise StoreUnavailableError("Document store sent an unexpected response")
        return body

    async def list_documents(self, collection: str) -> List[Tuple[str, Document]]:
        response = await self._request("GET", f"/{collection}")
        documents = self._json(response).get("documents", [])
        try:
            return [(str(doc.pop("id")), doc) for doc in documents]
        except (AttributeError, KeyError, TypeError) as e:
            raise StoreUnavailableError(f"Document store listed a malformed document in '{collection}'") from e

    async def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        response = await self._request("GET", f"/{collection}/{document_id}", allow_missing=True)
        if response.status_code == 404:
            return None
        document = self._json(response)
        document.pop("id", None)
        return document

    async def create_document(self, collection: str, data: Document) -> str:
        response = await self._request("POST", f"/{collection}", json=data)
        document_id = self._json(response).get("id")
        if not document_id:
            raise StoreUnavailableError(f"Document store did not assign an id in '{collection}'")
        return str(document_id)

    async def update_document(self, collection: str, document_id: str, fields: Document) -> None:
        response = await self._request("PATCH", f"/{collection}/{document_id}", allow_missing=True, json=fields)
        if response.status_code == 404:
            raise DocumentNotFoundError(f"Document {collection}/{document_id} not found")

    async def delete_document(self, collection: str, document_id: str) -> None:
        # a missing document counts as already deleted
        await self._request("DELETE", f"/{collection}/{document_id}", allow_missing=True)

    async def close(self) -> None:
        await self._client.aclose()
