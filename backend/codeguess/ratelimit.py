import threading
import time
from collections import deque
from typing import Deque, Dict, Optional

from flask import current_app, jsonify, request


class RateLimiter:
    """Sliding-window request counter keyed by client address.

    Addresses whose window has fully expired are dropped, both when they
    are next seen and by a sweep that runs at most once per window.
    """

    def __init__(self, max_requests: int, window_sec: float):
        self.max_requests = max_requests
        self.window_sec = window_sec
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = 0.0

    def _sweep(self, now: float) -> None:
        expired = [k for k, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_sec]
        for key in expired:
            del self._hits[key]
        self._last_sweep = now

    def retry_after(self, key: str, now: Optional[float] = None) -> float:
        """Record a hit for ``key``; return 0 if allowed, else seconds to wait."""
        if self.max_requests <= 0:
            return 0.0
        now = time.time() if now is None else now
        with self._lock:
            if now - self._last_sweep >= self.window_sec:
                self._sweep(now)
            hits = self._hits.get(key)
            if hits is not None:
                while hits and now - hits[0] >= self.window_sec:
                    hits.popleft()
                if not hits:
                    del self._hits[key]
                    hits = None
            if hits is not None and len(hits) >= self.max_requests:
                return max(0.0, self.window_sec - (now - hits[0]))
            if hits is None:
                hits = self._hits[key] = deque()
            hits.append(now)
            return 0.0

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def init_rate_limiter(app) -> RateLimiter:
    limiter = RateLimiter(
        max_requests=int(app.config.get('RATE_LIMIT_MAX_REQUESTS', 100)),
        window_sec=float(app.config.get('RATE_LIMIT_WINDOW_SEC', 900)),
    )
    app.extensions['rate_limiter'] = limiter
    return limiter


def enforce_rate_limit():
    """``before_request`` hook: answer 429 once a client exceeds its window."""
    if request.method == 'OPTIONS':
        return None
    limiter = current_app.extensions.get('rate_limiter')
    if limiter is None:
        return None
    key = request.remote_addr or 'unknown'
    wait = limiter.retry_after(key)
    if not wait:
        return None
    current_app.logger.warning(f"[rate-limit] client={key} path={request.path} retry_after={wait:.0f}s")
    response = jsonify({'error': 'Too many requests, please try again later.', 'code': 'rate_limited'})
    response.status_code = 429
    response.headers['Retry-After'] = str(int(wait) + 1)
    return response
