import time
from collections import defaultdict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

# POST endpoints that move money or issue credentials get the stricter limit
STRICT_PATH_MARKERS = ("/auth/login", "/sales/", "/subscriptions", "/payouts")

class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit_per_minute: int = 60, strict_limit_per_minute: int = 10):
        super().__init__(app)
        self.limit = limit_per_minute
        self.strict_limit = strict_limit_per_minute
        # In-memory sliding window: (IP, bucket) -> [timestamp, ...]
        self.requests = defaultdict(list)

    def _bucket(self, request: Request) -> str:
        if request.method == "POST" and any(marker in request.url.path for marker in STRICT_PATH_MARKERS):
            return "strict"
        return "default"

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()

        bucket = self._bucket(request)
        key = (client_ip, bucket)
        limit = self.strict_limit if bucket == "strict" else self.limit

        # Drop requests older than the 60s window
        self.requests[key] = [t for t in self.requests[key] if now - t < 60]

        if len(self.requests[key]) >= limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."}
            )

        self.requests[key].append(now)
        return await call_next(request)
