"""Telemetry middleware for request instrumentation."""

from __future__ import annotations

import time
from typing import Any, Final

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from fieldvoice.telemetry import observe_request, observe_upload_size

# Scrapes and probes would otherwise dominate the request histograms.
_UNINSTRUMENTED_PATHS: Final[frozenset[str]] = frozenset({"/metrics", "/health"})


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Collect request and upload-size metrics for Prometheus."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in _UNINSTRUMENTED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:  # pragma: no cover - re-raised for the exception handler
            observe_request(method, self._resolve_route(request), 500, time.perf_counter() - start_time)
            raise

        route = self._resolve_route(request)
        observe_request(method, route, response.status_code, time.perf_counter() - start_time)

        content_length = self._content_length(request)
        if content_length is not None and method == "POST":
            observe_upload_size(route, content_length)
        return response

    @staticmethod
    def _content_length(request: Request) -> int | None:
        raw_value = request.headers.get("content-length")
        if raw_value is None:
            return None
        try:
            return max(0, int(raw_value))
        except ValueError:
            return None

    @staticmethod
    def _resolve_route(request: Request) -> str:
        """Return best-effort route pattern for metrics labels."""

        scope_route: Any = request.scope.get("route")
        if scope_route is not None:
            path = getattr(scope_route, "path", None)
            if path:
                return path

        return request.url.path
