# middleware.py
import logging
import time
import uuid
from typing import Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info("[START] request_id=%s %s %s", request_id, request.method, request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.error("[ERROR] request_id=%s duration_ms=%d err=%r", request_id, duration_ms, e)
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info("[END]   request_id=%s status=%d duration_ms=%d", request_id, response.status_code, duration_ms)

        response.headers["x-request-id"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request counter keyed by client address."""

    def __init__(self, app, max_requests: int = 100, window_seconds: float = 15 * 60, clock=time.monotonic):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        # client address -> (window start, requests seen in window)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Forget clients whose window has ended, at most once per window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._windows = {
            client: (start, count)
            for client, (start, count) in self._windows.items()
            if now - start < self.window_seconds
        }
        self._last_sweep = now

    async def dispatch(self, request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        now = self.clock()
        self._sweep(now)

        window_start, count = self._windows.get(client, (now, 0))
        if now - window_start >= self.window_seconds:
            window_start, count = now, 0
        count += 1
        self._windows[client] = (window_start, count)

        if count > self.max_requests:
            logger.warning("Rate limit exceeded for %s", client)
            return JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE})

        return await call_next(request)
