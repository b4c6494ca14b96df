"""
Pytest fixtures for es-fuse tests.

Provides:
- trio as the anyio backend (pyfuse3 runs on trio)
- An in-memory stand-in for an Elasticsearch host
- A dispatcher whose registry hands out clients bound to those hosts
"""

import copy
from typing import Any

import pytest

from es_fuse.dispatcher import OperationDispatcher
from es_fuse.errors import StoreError
from es_fuse.registry import ConnectionRegistry


@pytest.fixture
def anyio_backend():
    return "trio"


class FakeCluster:
    """Server-side state of one store host: index -> doc id -> body."""

    def __init__(self):
        self.indices: dict[str, dict[str, dict[str, Any]]] = {}
        self.down = False


class FakeStoreClient:
    """Client with the ElasticsearchClient interface, backed by a FakeCluster."""

    def __init__(self, host: str, cluster: FakeCluster):
        self.host = host
        self.cluster = cluster
        self.closed = False

    def _check(self) -> None:
        if self.cluster.down:
            raise StoreError(f"connection refused: {self.host}")

    def _docs(self, index: str) -> dict[str, dict[str, Any]]:
        self._check()
        if index not in self.cluster.indices:
            raise StoreError(f"no such index [{index}]", status_code=404)
        return self.cluster.indices[index]

    async def list_indices(self) -> list[str]:
        self._check()
        return sorted(self.cluster.indices)

    async def index_exists(self, index: str) -> bool:
        self._check()
        return index in self.cluster.indices

    async def create_index(self, index: str) -> None:
        self._check()
        if index in self.cluster.indices:
            raise StoreError("resource_already_exists_exception", status_code=400)
        self.cluster.indices[index] = {}

    async def delete_index(self, index: str) -> None:
        self._docs(index)
        del self.cluster.indices[index]

    async def search(self, index: str, query: str = "*") -> list[str]:
        return list(self._docs(index))

    async def get_document(self, index: str, doc_id: str) -> dict[str, Any]:
        docs = self._docs(index)
        if doc_id not in docs:
            raise StoreError(f"document {doc_id} not found", status_code=404)
        return copy.deepcopy(docs[doc_id])

    async def index_document(self, index: str, doc_id: str, body: dict[str, Any]) -> None:
        self._check()
        # The store creates missing indices on first write
        self.cluster.indices.setdefault(index, {})[doc_id] = copy.deepcopy(body)

    async def document_exists(self, index: str, doc_id: str) -> bool:
        self._check()
        return doc_id in self.cluster.indices.get(index, {})

    async def delete_document(self, index: str, doc_id: str) -> None:
        docs = self._docs(index)
        if doc_id not in docs:
            raise StoreError(f"document {doc_id} not found", status_code=404)
        del docs[doc_id]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clusters() -> dict[str, FakeCluster]:
    """Fake hosts, created on first connection to a name."""
    return {}


@pytest.fixture
def opened(clusters) -> list[FakeStoreClient]:
    """Every client the registry has created, in order."""
    return []


@pytest.fixture
def registry(clusters, opened) -> ConnectionRegistry:
    def factory(name: str) -> FakeStoreClient:
        client = FakeStoreClient(name, clusters.setdefault(name, FakeCluster()))
        opened.append(client)
        return client

    return ConnectionRegistry(client_factory=factory)


@pytest.fixture
def dispatcher(registry) -> OperationDispatcher:
    return OperationDispatcher(registry=registry)
