"""Per-client request budgets enforced as a FastAPI dependency."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Deque

from fastapi import Request, Response

from intranet.core.config import settings
from intranet.core.exceptions import RateLimitExceeded

# scope -> settings attribute holding its budget
_SCOPE_BUDGETS = {
    "auth": "RATE_LIMIT_AUTH_MAX_REQUESTS",
    "ai": "RATE_LIMIT_AI_MAX_REQUESTS",
    "inbound": "RATE_LIMIT_INBOUND_MAX_REQUESTS",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


class RequestLog:
    """Keeps recent request timestamps per key over a sliding window."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[str, Deque[float]] = {}
        self._lock = Lock()

    def check(self, key: str, *, limit: int, window_seconds: int) -> Decision:
        if limit <= 0:
            return Decision(True, limit, 0)
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return Decision(False, limit, 0, retry_after=max(int(hits[0] + window_seconds - now), 1))
            hits.append(now)
            return Decision(True, limit, limit - len(hits))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


request_log = RequestLog()


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


def scope_budget(scope: str) -> int:
    return int(getattr(settings, _SCOPE_BUDGETS.get(scope, "RATE_LIMIT_MAX_REQUESTS")))


def rate_limit(scope: str = "default"):
    window = settings.RATE_LIMIT_WINDOW_SECONDS

    def _dependency(request: Request, response: Response) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        decision = request_log.check(
            f"{scope}:{client_address(request)}",
            limit=scope_budget(scope),
            window_seconds=window,
        )
        if not decision.allowed:
            raise RateLimitExceeded(retry_after=decision.retry_after, limit=decision.limit, window_seconds=window)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

    return _dependency
