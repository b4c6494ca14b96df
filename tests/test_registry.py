"""Tests for the connection registry."""

import pytest
import trio

from es_fuse.config import StoreConfig
from es_fuse.errors import NotFound
from es_fuse.registry import ConnectionRegistry
from es_fuse.store_client import ElasticsearchClient


class TestOpenClose:

    @pytest.mark.anyio
    async def test_open_registers_handle(self, registry):
        handle = await registry.open("es1")
        assert registry.get("es1") is handle
        assert registry.has("es1")
        assert registry.names() == ["es1"]

    @pytest.mark.anyio
    async def test_get_missing_raises_not_found(self, registry):
        with pytest.raises(NotFound):
            registry.get("nope")

    @pytest.mark.anyio
    async def test_close_removes_and_closes(self, registry):
        handle = await registry.open("es1")
        assert await registry.close("es1") is True
        assert handle.closed is True
        assert not registry.has("es1")
        with pytest.raises(NotFound):
            registry.get("es1")

    @pytest.mark.anyio
    async def test_close_missing_is_noop(self, registry):
        assert await registry.close("never-opened") is False

    @pytest.mark.anyio
    async def test_reopen_replaces_and_closes_previous(self, registry):
        first = await registry.open("es1")
        second = await registry.open("es1")
        assert registry.get("es1") is second
        assert first.closed is True
        assert second.closed is False
        assert registry.names() == ["es1"]

    @pytest.mark.anyio
    async def test_close_all(self, registry, opened):
        await registry.open("es1")
        await registry.open("es2")
        await registry.close_all()
        assert registry.names() == []
        assert all(client.closed for client in opened)

    @pytest.mark.anyio
    async def test_concurrent_opens_of_different_names(self, registry):
        async with trio.open_nursery() as nursery:
            for name in ("es1", "es2", "es3"):
                nursery.start_soon(registry.open, name)
        assert sorted(registry.names()) == ["es1", "es2", "es3"]


class TestDefaultFactory:

    @pytest.mark.anyio
    async def test_builds_elasticsearch_client_from_name(self):
        registry = ConnectionRegistry(store_config=StoreConfig(default_port=9300))
        handle = await registry.open("es1")
        assert isinstance(handle, ElasticsearchClient)
        assert handle.base_url == "http://es1:9300"
        # Lazy: no HTTP client until the first request
        assert handle._client is None
        await registry.close_all()

    @pytest.mark.anyio
    async def test_scheme_in_connection_name(self):
        registry = ConnectionRegistry(store_config=StoreConfig())
        handle = await registry.open("https+search.local:443")
        assert handle.base_url == "https://search.local:443"
        await registry.close_all()
