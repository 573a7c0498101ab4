"""
Rate limiting middleware of the core REST API

Requests to the configured paths are counted per client in fixed
time windows. The client is identified by the first address of the
``X-Forwarded-For`` header or the peer address of the connection.
Requests exceeding the limit are answered with ``429 Too Many Requests``
and a ``Retry-After`` header without reaching the path operation.
"""

import math
import time
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from . import base
from ..misc.logger import sanitize
from ..schemas.config import RateLimitConfig, RateLimitRule


logger = logging.getLogger(__name__)


def get_client_id(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


class FixedWindowRateLimiter:
    """
    Thread-safe counter of requests per client and path in fixed time windows
    """

    def __init__(self, conf: RateLimitConfig, clock: Callable[[], float] = time.monotonic):
        self.enabled = conf.enabled
        self.rules: Dict[str, RateLimitRule] = {k.lower(): v for k, v in conf.rules.items()}
        self.clock = clock
        self._windows: Dict[Tuple[str, str], Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, client_id: str, path: str) -> Optional[int]:
        """
        Count a request and return the seconds to wait if the limit was exceeded (``None`` otherwise)
        """

        path = path.lower()
        rule = self.rules.get(path)
        if not self.enabled or rule is None:
            return None

        window = rule.window_minutes * 60
        now = self.clock()
        key = (path, client_id)
        with self._lock:
            start, count = self._windows.get(key, (now, 0))
            if now - start >= window:
                start, count = now, 0
            if count >= rule.max_requests:
                return max(1, math.ceil(start + window - now))
            self._windows[key] = (start, count + 1)
            self._cleanup(now)
        return None

    def _cleanup(self, now: float):
        if len(self._windows) < 1024:
            return
        longest = max(rule.window_minutes for rule in self.rules.values()) * 60
        for key in [k for k, (start, _) in self._windows.items() if now - start >= longest]:
            del self._windows[key]

    def reset(self):
        with self._lock:
            self._windows.clear()

    async def __call__(self, request: Request, call_next):
        client_id = get_client_id(request)
        retry_after = self.hit(client_id, request.url.path)
        if retry_after is None:
            return await call_next(request)

        logger.warning(
            f"Rate limit exceeded for {sanitize(request.url.path)!r} from {sanitize(client_id)!r}, "
            f"retry after {retry_after} seconds"
        )
        exc = base.TooManyRequests(retry_after, f"client={sanitize(client_id)!r}")
        return base.error_response(request, exc.status_code, exc.message, exc.detail, exc.repeat, exc.headers)
