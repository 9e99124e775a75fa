"""In-process TTL cache for market data results.

Entries expire a fixed number of seconds after they are written. Expired
entries read as absent and are dropped on access; a CacheSweeper thread
removes the ones nobody asks for again so memory stays bounded.
"""

import threading
import time
from collections.abc import Callable, Hashable
from typing import Any

from marketcache.logging import logger

Clock = Callable[[], float]


class TTLCache:
    """
    🗄️ Thread-safe key/value store with a single time-to-live.

    Values stored here are treated as immutable by every reader. A `set`
    is atomic with respect to concurrent `get` calls on the same key and
    the last writer wins.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Clock = time.monotonic) -> None:
        """
        Initialize an empty cache.

        Args:
            ttl_seconds: Lifetime of every entry, measured from its `set`
            clock: Monotonic time source in seconds (injectable for tests)
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.RLock()

    def get(self, key: Hashable) -> Any | None:
        """Return the value for `key`, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store `value` under `key`, expiring `ttl_seconds` from now."""
        expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            self._entries[key] = (expires_at, value)

    def invalidate(self, key: Hashable) -> bool:
        """Evict `key`. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Evict every string key starting with `prefix`."""
        with self._lock:
            doomed = [k for k in self._entries if isinstance(k, str) and k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove all expired entries and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Swept expired cache entries count={count}", count=len(expired))
        return len(expired)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheSweeper:
    """
    🧹 Background thread that periodically evicts expired cache entries.

    The thread is a daemon and owns a stop Event, so it can be shut down
    cleanly from tests or at process exit with `stop()`.
    """

    def __init__(self, cache: TTLCache, interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping. Calling start on a running sweeper is a no-op."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="marketcache-sweeper", daemon=True
        )
        self._thread.start()
        logger.debug(
            "Cache sweeper started interval={interval}s", interval=self.interval_seconds
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal the sweeper to exit and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.debug("Cache sweeper stopped")

    def _run(self) -> None:
        # Event.wait returns True once stop() is called
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.cache.sweep()
            except Exception as e:  # pragma: no cover
                logger.error("Cache sweep failed error={error}", error=str(e))

    def __enter__(self) -> "CacheSweeper":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
