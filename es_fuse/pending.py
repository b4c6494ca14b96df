"""
Pending-create tracking.

Filesystem create and write are two calls, but indexing a document is one.
Between them the file must look like it exists even though the store has
nothing yet, so created paths are remembered here until a write lands.
"""

import logging
import threading

log = logging.getLogger(__name__)


class PendingCreateTracker:
    """Set of record paths created but not yet persisted as documents."""

    def __init__(self):
        self._paths: set[str] = set()
        self._lock = threading.Lock()

    def mark_created(self, path: str) -> None:
        with self._lock:
            self._paths.add(path)
        log.debug(f"Pending create: {path}")

    def is_pending(self, path: str) -> bool:
        with self._lock:
            return path in self._paths

    def discard(self, path: str) -> bool:
        """Forget a path. Returns True if it was pending."""
        with self._lock:
            if path not in self._paths:
                return False
            self._paths.remove(path)
        log.debug(f"Pending create cleared: {path}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._paths.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)
