"""
Dispatch guard — drops redelivered Telegram commands.

A key (chat_id, message_id) is admitted once; repeats are refused until
RETENTION seconds after the first admission, whatever happened to the job.
"""

import threading
import time
from typing import Callable, Hashable, Protocol, runtime_checkable

RETENTION = 5 * 60  # seconds


@runtime_checkable
class DedupStore(Protocol):
    """Anything that can answer "first time we see this key?" atomically."""

    def admit(self, key: Hashable) -> bool: ...


class DispatchGuard:
    """
    In-memory DedupStore.

    `admit` never awaits, so it is atomic on one event loop; the lock also
    makes it safe to share between threads.
    """

    def __init__(
        self,
        retention: float = RETENTION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.retention = retention
        self._clock = clock
        self._seen: dict[Hashable, float] = {}  # key -> expiry time
        self._lock = threading.Lock()

    def admit(self, key: Hashable) -> bool:
        with self._lock:
            now = self._clock()
            self._purge(now)
            if key in self._seen:
                return False
            self._seen[key] = now + self.retention
            return True

    def _purge(self, now: float) -> None:
        expired = [k for k, expiry in self._seen.items() if expiry <= now]
        for k in expired:
            del self._seen[k]

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            expiry = self._seen.get(key)
            return expiry is not None and expiry > self._clock()

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._seen)
