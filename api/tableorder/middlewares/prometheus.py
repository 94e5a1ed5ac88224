"""Request and error counters keyed by route template."""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..routes_metrics import http_errors_total, http_requests_total

UNMATCHED = "<unmatched>"


def route_template(request: Request) -> str:
    """``/api/orders/{order_id}`` rather than ``/api/orders/17``.

    Requests that matched no route share one label so scanners probing
    random paths cannot grow the series count.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count every response, and 4xx/5xx ones separately."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        path = route_template(request)
        status = str(response.status_code)
        http_requests_total.labels(path=path, method=request.method, status=status).inc()
        if response.status_code >= 400:
            http_errors_total.labels(path=path, status=status).inc()
        return response
