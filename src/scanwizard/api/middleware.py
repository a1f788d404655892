"""Middleware: request timing, security headers, body size limits."""

from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("scanwizard.api")

# Workflow documents are capped by the YAML loader as well; keep these in step
_WORKFLOW_PATHS = ("/validate", "/validate/report", "/validate/scan-steps", "/validate/variables")
_MAX_BODY_WORKFLOW = 2 * 1024 * 1024  # 2 MB for workflow validation
_MAX_BODY_DEFAULT = 64 * 1024  # 64 KB for everything else


def _too_large(limit: int) -> JSONResponse:
    if limit >= 1024 * 1024:
        size = f"{limit // (1024 * 1024)} MB"
    else:
        size = f"{limit // 1024} KB"
    return JSONResponse(
        status_code=413,
        content={"detail": f"Request body too large (max {size})"},
    )


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Time each request, expose it as ``X-Request-Duration-Ms`` and log it."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"
        logger.debug(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code, elapsed,
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add standard security headers to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'self'; frame-ancestors 'none'"
        return response


class RequestBodyLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies that exceed size limits.

    Workflow validation endpoints accept up to 2 MB; all other endpoints
    are capped at 64 KB.  The Content-Length header is checked first, then
    the streamed body is counted and the request aborted as soon as the
    limit is passed.  Consumed bytes are cached on ``request._body`` so
    handlers can still ``await request.body()``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path.rstrip("/")
        limit = _MAX_BODY_WORKFLOW if path in _WORKFLOW_PATHS else _MAX_BODY_DEFAULT

        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=400, content={"detail": "Invalid Content-Length header"}
                )
            if declared > limit:
                return _too_large(limit)

        if request.method in ("POST", "PUT", "PATCH"):
            chunks: list[bytes] = []
            total = 0
            async for chunk in request.stream():
                total += len(chunk)
                if total > limit:
                    return _too_large(limit)
                chunks.append(chunk)
            request._body = b"".join(chunks)  # noqa: SLF001

        return await call_next(request)
