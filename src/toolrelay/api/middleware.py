"""API middleware: caller identity and rate limiting."""

from __future__ import annotations

import time
from collections import defaultdict
from typing import TYPE_CHECKING, ClassVar

from starlette.middleware.base import BaseHTTPMiddleware

from toolrelay.api.auth import bearer_token, decode_token
from toolrelay.api.errors import error_response
from toolrelay.core.errors import AuthError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import Request, Response


class IdentityMiddleware(BaseHTTPMiddleware):
    """Put the bearer token's subject on ``request.state.user_id``.

    Only identifies the caller (for rate limiting and logging); routes
    still authenticate through ``get_current_user``.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request.state.user_id = None
        token = bearer_token(request)
        secret = request.app.state.config.auth.jwt_secret
        if token is not None and secret:
            try:
                payload = decode_token(token, secret)
            except AuthError:
                payload = {}
            request.state.user_id = payload.get("sub")
        return await call_next(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-identity rate limiting using a sliding window."""

    EXEMPT_PATHS: ClassVar[set[str]] = {
        "/api/health",
        "/api/health/detailed",
        "/docs",
        "/openapi.json",
        "/redoc",
    }

    def __init__(self, app: object, rate_limit: int = 60, window: int = 60) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self.rate_limit = rate_limit
        self.window = window
        self._requests: dict[str, list[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        # Prefer the token subject, then the client address
        user_id = getattr(request.state, "user_id", None)
        ip_addr = request.client.host if request.client else "unknown"
        key_id = f"user:{user_id}" if user_id else f"ip:{ip_addr}"

        now = time.monotonic()
        self._requests[key_id] = [
            t for t in self._requests[key_id] if now - t < self.window
        ]

        if len(self._requests[key_id]) >= self.rate_limit:
            return error_response(
                429,
                "Rate limit exceeded. Try again later.",
                headers={"Retry-After": str(self.window)},
            )

        self._requests[key_id].append(now)
        response = await call_next(request)

        remaining = self.rate_limit - len(self._requests[key_id])
        response.headers["X-RateLimit-Limit"] = str(self.rate_limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Key"] = key_id
        return response
