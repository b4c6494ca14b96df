"""HTTP client for the Elasticsearch REST API."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .config import StoreConfig
from .errors import StoreError

log = logging.getLogger(__name__)

# Search is near-real-time; document writes block until they are searchable
REFRESH = {"refresh": "wait_for"}


def resolve_base_url(host: str, store_config: StoreConfig) -> str:
    """Turn a connection name into a base URL.

    "es1" -> "http://es1:9200". A name is a single path segment, so a scheme
    is written with "+" instead of "://": "https+search.local:443" ->
    "https://search.local:443". Host names never contain "+".
    """
    scheme, sep, rest = host.partition("+")
    if not sep:
        scheme, rest = store_config.default_scheme, host
    # A port is present if the last ":" comes after any IPv6 closing bracket
    if ":" not in rest.rpartition("]")[2]:
        rest = f"{rest}:{store_config.default_port}"
    return f"{scheme}://{rest}"


def _seg(value: str) -> str:
    return quote(value, safe="")


class ElasticsearchClient:
    """Async client for one Elasticsearch host.

    The HTTP client is created on first request, so constructing a client
    never touches the network.
    """

    def __init__(self, host: str, store_config: Optional[StoreConfig] = None):
        self.host = host
        self.store_config = store_config or StoreConfig()
        self.base_url = resolve_base_url(host, self.store_config)
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.store_config.timeout,
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {self.base_url}{path}: {e}") from e
        if response.status_code >= 400:
            raise StoreError(
                f"{method} {self.base_url}{path}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def _head(self, path: str) -> bool:
        """HEAD request: True on 2xx, False on 404, StoreError otherwise."""
        try:
            await self._request("HEAD", path)
        except StoreError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    # ── Indices ─────────────────────────────────────────────────────

    async def list_indices(self) -> list[str]:
        """List index names (cat API)."""
        response = await self._request(
            "GET", "/_cat/indices", params={"format": "json", "h": "index"},
        )
        return [row["index"] for row in response.json()]

    async def index_exists(self, index: str) -> bool:
        return await self._head(f"/{_seg(index)}")

    async def create_index(self, index: str) -> None:
        await self._request("PUT", f"/{_seg(index)}")
        log.debug(f"Created index {index} on {self.base_url}")

    async def delete_index(self, index: str) -> None:
        await self._request("DELETE", f"/{_seg(index)}")
        log.debug(f"Deleted index {index} on {self.base_url}")

    # ── Documents ───────────────────────────────────────────────────

    async def search(self, index: str, query: str = "*") -> list[str]:
        """Run a query-string search and return matching document ids."""
        response = await self._request(
            "GET",
            f"/{_seg(index)}/_search",
            params={"q": query, "size": self.store_config.search_size},
        )
        hits = response.json().get("hits", {}).get("hits", [])
        return [hit["_id"] for hit in hits]

    async def get_document(self, index: str, doc_id: str) -> dict[str, Any]:
        """Fetch a document's source body."""
        response = await self._request("GET", f"/{_seg(index)}/_doc/{_seg(doc_id)}")
        return response.json().get("_source", {})

    async def index_document(self, index: str, doc_id: str, body: dict[str, Any]) -> None:
        """Create or replace a document."""
        await self._request(
            "PUT", f"/{_seg(index)}/_doc/{_seg(doc_id)}",
            params=REFRESH, json=body,
        )

    async def document_exists(self, index: str, doc_id: str) -> bool:
        return await self._head(f"/{_seg(index)}/_doc/{_seg(doc_id)}")

    async def delete_document(self, index: str, doc_id: str) -> None:
        await self._request(
            "DELETE", f"/{_seg(index)}/_doc/{_seg(doc_id)}", params=REFRESH,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
