from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.branchflow.core.context import get_request_context
from app.branchflow.core.db_timing import begin_db_timing, current_db_time_ms, end_db_timing
from app.branchflow.core.logging import log_json
from app.branchflow.core.metrics import metrics

logger = logging.getLogger("branchflow.request")


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None) if route is not None else None
    return path or request.url.path


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_time_ms: float | None,
) -> dict:
    state = request.state
    context = get_request_context(request)
    return {
        "event": "http_request",
        "trace_id": context.trace_id or getattr(state, "trace_id", ""),
        "user_id": context.user_id,
        "role": context.role,
        "location_id": context.location_id,
        "route": _route_template(request),
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": round(db_time_ms, 2) if db_time_ms is not None else None,
        "error_code": getattr(state, "error_code", None),
        "error_class": getattr(state, "error_class", None),
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        token = begin_db_timing()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - started) * 1000
            db_time_ms = current_db_time_ms()
            end_db_timing(token)
            payload = build_request_log_payload(
                request=request,
                response=response,
                latency_ms=latency_ms,
                db_time_ms=db_time_ms,
            )
            level = logging.WARNING if payload["status_code"] >= 500 else logging.INFO
            log_json(logger, payload, level=level)
            metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
