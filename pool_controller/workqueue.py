"""Rate-limited work queue with per-key exclusion.

Guarantees, for every key:

- it is handed to at most one worker at a time (``get`` ... ``done``);
- adding it while it is already pending is a no-op;
- adding it while it is being processed queues it again once ``done`` is called.

Delayed adds are kept in a min-heap ordered by release time and moved into the
queue by a background thread.
"""

import heapq
import itertools
import threading
import time
from collections import deque
from collections.abc import Hashable

from pool_controller.logging_config import get_logger

logger = get_logger(__name__)


class ItemExponentialFailureRateLimiter:
    """Per-item backoff of ``base_delay * 2**failures``, capped at ``max_delay``."""

    def __init__(self, base_delay: float = 0.005, max_delay: float = 1000.0):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: dict[Hashable, int] = {}
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> float:
        """Record a failure and return how long the item should wait."""
        with self._lock:
            exp = self._failures.get(item, 0)
            self._failures[item] = exp + 1

        # Beyond this the float would overflow long before reaching the cap
        if exp > 62:
            return self.max_delay
        return min(self.base_delay * 2**exp, self.max_delay)

    def num_requeues(self, item: Hashable) -> int:
        with self._lock:
            return self._failures.get(item, 0)

    def forget(self, item: Hashable) -> None:
        with self._lock:
            self._failures.pop(item, None)


class RateLimitingQueue:
    """Work queue keyed by hashable items."""

    def __init__(self, rate_limiter: ItemExponentialFailureRateLimiter | None = None, name: str = ""):
        self.name = name
        self.rate_limiter = rate_limiter or ItemExponentialFailureRateLimiter()

        self._cond = threading.Condition()
        self._queue: deque = deque()
        self._dirty: set = set()
        self._processing: set = set()
        self._shutting_down = False

        self._waiting: list = []
        self._waiting_ready_at: dict[Hashable, float] = {}
        self._seq = itertools.count()

        self._waiting_thread = threading.Thread(
            target=self._waiting_loop, name=f"{name or 'workqueue'}-delay", daemon=True
        )
        self._waiting_thread.start()

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down

    def add(self, item: Hashable) -> None:
        """Queue an item for processing."""
        with self._cond:
            self._add_locked(item)

    def _add_locked(self, item: Hashable) -> None:
        if self._shutting_down:
            return
        if item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            # Re-queued by done()
            return
        self._queue.append(item)
        self._cond.notify_all()

    def get(self) -> tuple[Hashable | None, bool]:
        """Block until an item is available.

        Returns:
            ``(item, False)``, or ``(None, True)`` once the queue is shut down
        """
        with self._cond:
            while not self._queue and not self._shutting_down:
                self._cond.wait()
            if self._shutting_down:
                return None, True

            item = self._queue.popleft()
            self._processing.add(item)
            self._dirty.discard(item)
            return item, False

    def done(self, item: Hashable) -> None:
        """Mark an item as processed, re-queueing it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(item)
            if item in self._dirty and not self._shutting_down:
                self._queue.append(item)
                self._cond.notify_all()

    def add_after(self, item: Hashable, delay: float) -> None:
        """Queue an item once ``delay`` seconds have passed.

        An item already waiting keeps whichever release time is earlier.
        """
        with self._cond:
            if self._shutting_down:
                return
            if delay <= 0:
                self._add_locked(item)
                return

            ready_at = time.monotonic() + delay
            existing = self._waiting_ready_at.get(item)
            if existing is not None and existing <= ready_at:
                return
            self._waiting_ready_at[item] = ready_at
            heapq.heappush(self._waiting, (ready_at, next(self._seq), item))
            self._cond.notify_all()

    def add_rate_limited(self, item: Hashable) -> None:
        """Queue an item after its rate limiter backoff."""
        self.add_after(item, self.rate_limiter.when(item))

    def forget(self, item: Hashable) -> None:
        """Clear an item's failure history."""
        self.rate_limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return self.rate_limiter.num_requeues(item)

    def shut_down(self) -> None:
        """Stop handing out items. Pending and waiting items are discarded."""
        with self._cond:
            self._shutting_down = True
            self._queue.clear()
            self._dirty.clear()
            self._waiting.clear()
            self._waiting_ready_at.clear()
            self._cond.notify_all()
        logger.debug(f"Work queue {self.name!r} shut down")

    def _waiting_loop(self) -> None:
        with self._cond:
            while not self._shutting_down:
                now = time.monotonic()
                while self._waiting and self._waiting[0][0] <= now:
                    ready_at, _, item = heapq.heappop(self._waiting)
                    # Skip entries superseded by an earlier add_after
                    if self._waiting_ready_at.get(item) != ready_at:
                        continue
                    del self._waiting_ready_at[item]
                    self._add_locked(item)

                if self._waiting:
                    self._cond.wait(timeout=self._waiting[0][0] - now)
                else:
                    self._cond.wait()
