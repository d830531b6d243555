"""Rate limiting middleware for the catalog API."""

import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Iterable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

WINDOW_SECONDS = 60.0
IDLE_EVICTION_SECONDS = 300.0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limit on requests per client IP.

    Requests over the limit get a 429 JSON body with a Retry-After header.
    """

    def __init__(
        self,
        app,
        requests_per_minute: int = 60,
        exempt_paths: Iterable[str] = ("/health",),
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.exempt_paths = frozenset(exempt_paths)
        self._clock = clock
        # Request timestamps per IP
        self.request_history: Dict[str, Deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        now = self._clock()
        history = self._window(client_ip, now)
        if len(history) >= self.requests_per_minute:
            retry_after = max(1, int(history[0] + WINDOW_SECONDS - now) + 1)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": (
                        f"Rate limit exceeded. Maximum {self.requests_per_minute} "
                        "requests per minute allowed."
                    )
                },
                headers={"Retry-After": str(retry_after)},
            )

        history.append(now)
        self._cleanup_old_entries(now)
        return await call_next(request)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP from proxy headers or the connection."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First IP in the chain is the client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

    def _window(self, client_ip: str, now: float) -> Deque[float]:
        """This IP's timestamps from the last minute."""
        history = self.request_history[client_ip]
        while history and history[0] <= now - WINDOW_SECONDS:
            history.popleft()
        return history

    def _cleanup_old_entries(self, now: float):
        """Forget IPs idle for five minutes."""
        idle = [
            ip
            for ip, requests in self.request_history.items()
            if not requests or requests[-1] < now - IDLE_EVICTION_SECONDS
        ]
        for ip in idle:
            del self.request_history[ip]
