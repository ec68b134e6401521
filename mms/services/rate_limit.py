import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, Tuple

logger = logging.getLogger(__name__)


class UploadRateLimiter:
    """Sliding-window request counter keyed by client address.

    State lives in this process only, so limits reset on restart and are not
    shared between instances. Addresses with no hits left in the window are
    dropped at most once per window.
    """

    def __init__(self, max_requests: int = 20, window_seconds: int = 900, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _sweep(self, cutoff: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def hit(self, key: str) -> Tuple[bool, int]:
        """Record a request for ``key``. Returns (allowed, retry_after_seconds)."""
        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= self.max_requests:
                retry_after = int(hits[0] + self.window_seconds - now) + 1
                logger.warning(f"Upload rate limit exceeded for {key}")
                return False, retry_after

            hits.append(now)
            return True, 0

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
