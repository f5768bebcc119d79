"""
In-memory memo table shared by SessionManager instances.

Entries never expire and are never evicted; they live until deleted or until
the process exits. Callers build their own keys (``con:<username>``,
``objectList:<userId>`` ...), so collisions are the caller's problem.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Tuple

_logger = logging.getLogger(__name__)


class Cache:
    """Thread-safe key/value store with has/get/set/delete."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default if absent."""
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
        _logger.debug("cache set %s", key)

    def delete(self, key: str) -> None:
        """Remove key if present; missing keys are ignored."""
        with self._lock:
            removed = key in self._data
            self._data.pop(key, None)
        if removed:
            _logger.debug("cache delete %s", key)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def claim(self, key: str) -> Tuple[Future, bool]:
        """Join the pending computation for key, or start one.

        Returns ``(future, leader)``. The leader must resolve the future and
        call :meth:`release`; everyone else waits on the future.
        """
        with self._inflight_lock:
            future = self._inflight.get(key)
            if future is not None:
                return future, False
            future = Future()
            self._inflight[key] = future
            return future, True

    def release(self, key: str) -> None:
        with self._inflight_lock:
            self._inflight.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


_shared: Optional[Cache] = None
_shared_lock = threading.Lock()


def shared_cache() -> Cache:
    """Return the process-wide cache, creating it on first use."""
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = Cache()
        return _shared
