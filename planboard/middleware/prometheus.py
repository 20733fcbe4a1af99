"""ASGI middleware that records Prometheus metrics and tags each request with an id."""

from __future__ import annotations

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from planboard.core.logging_config import request_id_var
from planboard.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128

# Scraped or polled constantly; kept out of the per-endpoint series
_SKIP_PATHS = frozenset({"/api/health", "/metrics"})


def _request_id(request: Request) -> str:
    """Client-supplied id when it is short and printable, else a fresh one."""
    supplied = request.headers.get(REQUEST_ID_HEADER, "")
    if supplied and len(supplied) <= _MAX_REQUEST_ID_LENGTH and supplied.isprintable():
        return supplied
    return uuid.uuid4().hex


def _endpoint_label(request: Request) -> str:
    """Route template when the router matched one, else the path with ids collapsed.

    /api/v1/projects/550e8400-e29b-41d4-a716-446655440000/roles -> /api/v1/projects/{id}/roles
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    out: list[str] = []
    for part in request.url.path.rstrip("/").split("/"):
        try:
            uuid.UUID(part)
        except ValueError:
            out.append(part)
        else:
            out.append("{id}")
    return "/".join(out) or "/"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records request count, duration and the in-progress gauge."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            if request.url.path in _SKIP_PATHS:
                response = await call_next(request)
            else:
                response = await self._instrumented(request, call_next)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    async def _instrumented(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        method = request.method
        http_requests_in_progress.labels(method=method).inc()
        start = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        finally:
            elapsed = time.perf_counter() - start
            endpoint = _endpoint_label(request)
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(elapsed)
            http_requests_in_progress.labels(method=method).dec()
        return response
