"""
Connection registry: live document store clients keyed by connection name.

The registry is the only place client handles are created or closed. Callers
look a handle up for the duration of one verb and never hold it across calls.
The mapping is guarded by a lock so overlapping verbs (a getattr racing an
rmdir, two mkdirs of the same name) see either the old or the new state,
never a torn one.
"""

import logging
import threading
from typing import Callable, Optional

from .config import StoreConfig
from .errors import NotFound
from .store_client import ElasticsearchClient

log = logging.getLogger(__name__)

ClientFactory = Callable[[str], ElasticsearchClient]


class ConnectionRegistry:
    """Connection name -> opened store client."""

    def __init__(self, client_factory: Optional[ClientFactory] = None,
                 store_config: Optional[StoreConfig] = None):
        self.store_config = store_config or StoreConfig()
        self._factory = client_factory or (
            lambda name: ElasticsearchClient(name, self.store_config)
        )
        self._handles: dict[str, ElasticsearchClient] = {}
        self._lock = threading.Lock()

    async def open(self, name: str) -> ElasticsearchClient:
        """Create and register a client for name.

        No network round trip happens here. Re-opening a name replaces its
        handle; the displaced one is closed.
        """
        handle = self._factory(name)
        with self._lock:
            displaced = self._handles.get(name)
            self._handles[name] = handle
        log.info(f"Opened connection {name}")
        if displaced is not None:
            log.debug(f"Connection {name} re-opened, closing previous handle")
            await displaced.close()
        return handle

    async def close(self, name: str) -> bool:
        """Remove and close the handle for name. Returns False if absent."""
        with self._lock:
            handle = self._handles.pop(name, None)
        if handle is None:
            return False
        await handle.close()
        log.info(f"Closed connection {name}")
        return True

    def get(self, name: str) -> ElasticsearchClient:
        """Get the handle for name, or raise NotFound."""
        with self._lock:
            handle = self._handles.get(name)
        if handle is None:
            raise NotFound(f"No connection named {name!r}")
        return handle

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._handles

    def names(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    async def close_all(self) -> None:
        """Close every handle (unmount)."""
        with self._lock:
            handles = list(self._handles.items())
            self._handles.clear()
        for name, handle in handles:
            try:
                await handle.close()
            except Exception as e:
                log.warning(f"Error closing connection {name}: {e}")
