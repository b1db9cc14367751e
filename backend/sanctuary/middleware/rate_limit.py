"""
Sanctuary Backend — Credential Endpoint Rate Limiting
=======================================================

What:  Per-IP sliding window limiter for login, signup and forgot-password.
How:   Keeps request timestamps per client IP in memory. Timestamps older
       than the window are dropped on each request; a client already at the
       limit gets 429 with a Retry-After header.
Who:   Registered as the outermost middleware in main.py.

Only the credential endpoints are limited: they are the ones exposed to
password guessing and email flooding. Resource routes are not limited.

State is per process. Multiple uvicorn workers each keep their own window.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, FrozenSet, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from sanctuary.config import Settings, settings as default_settings
from sanctuary.exceptions import RateLimitExceededError
from sanctuary.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LIMITED_PATHS: FrozenSet[str] = frozenset({
    "/api/users/login",
    "/api/users/signup",
    "/api/users/forgot-password",
})

# Sweep idle IPs after this many recorded requests
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, config: Optional[Settings] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.config = config or default_settings
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path.rstrip("/") not in LIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        try:
            self.check(client_ip, time.time())
        except RateLimitExceededError as exc:
            # Raised outside the router, so the app's exception handlers never see it
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)

    def check(self, client_ip: str, now: float) -> None:
        """
        Record one request from `client_ip` at `now`.

        Raises:
            RateLimitExceededError: the client already used its window
        """
        window = self.config.rate_limit_window
        window_start = now - window

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.config.rate_limit_requests:
            retry_after = int(timestamps[0] + window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                window,
            )
            raise RateLimitExceededError(retry_after=retry_after)

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
