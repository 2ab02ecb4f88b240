# FILE: daily_quiz/middleware/rate_limit.py
"""
Rate limiting middleware (sliding one-minute window, in-memory)

Clients are keyed by the identity headers when present, otherwise by IP.
"""
import logging
import time
from collections import defaultdict
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

IDENTITY_HEADERS = ("x-admin-id", "x-player-id", "x-guest-token")
EXEMPT_PATHS = ("/health",)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client request budget per minute"""

    def __init__(self, app, rpm: int = 60):
        super().__init__(app)
        self.rpm = rpm
        self.requests = defaultdict(list)

    def _client_key(self, request: Request) -> str:
        for header in IDENTITY_HEADERS:
            value = request.headers.get(header)
            if value:
                return f"{header}:{value}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(EXEMPT_PATHS):
            return await call_next(request)

        client = self._client_key(request)
        now = time.time()

        self.requests[client] = [ts for ts in self.requests[client] if now - ts < 60]

        if len(self.requests[client]) >= self.rpm:
            logger.warning(f"Rate limit exceeded for {client}")
            return JSONResponse(
                status_code=429,
                content={"error": "rate_limited", "detail": "Rate limit exceeded"},
                headers={"Retry-After": "60"}
            )

        self.requests[client].append(now)
        return await call_next(request)
