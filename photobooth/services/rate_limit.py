import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Tuple

from starlette.requests import Request

from photobooth.config import settings


class SlidingWindowLimiter:
    """Admits at most ``max_requests`` per client within a rolling ``window_seconds``.

    A client is only tracked while it has events inside the window. Keys whose
    window has fully expired are swept at most once per window, so the table
    stays bounded by the clients seen in the last ``window_seconds``.
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._events: Dict[str, Deque[float]] = {}
        self._next_sweep: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def tracked_clients(self) -> int:
        return len(self._events)

    def _sweep(self, now: float) -> None:
        expired = [key for key, bucket in self._events.items() if now - bucket[-1] >= self.window_seconds]
        for key in expired:
            del self._events[key]
        self._next_sweep = now + self.window_seconds

    def consume(self, key: str) -> Tuple[bool, int]:
        """Take one token for ``key``; returns (allowed, retry_after_seconds)."""
        now = self._clock()

        with self._lock:
            if self._next_sweep is None or now >= self._next_sweep:
                self._sweep(now)

            bucket = self._events.get(key) or deque()
            while bucket and now - bucket[0] >= self.window_seconds:
                bucket.popleft()

            if len(bucket) >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return False, retry_after

            bucket.append(now)
            self._events[key] = bucket
            return True, 0


def client_ip(request: Request) -> str:
    if settings.trust_proxy:
        forwarded_for = request.headers.get("x-forwarded-for", "").strip()
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
