"""HTTP middleware and error mapping shared by both FastAPI apps."""

from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paybridge.common.config import settings
from paybridge.common.errors import PayBridgeError
from paybridge.common.logging import order_id_ctx, trace_id_ctx
from paybridge.common.metrics import http_request_duration_seconds, http_requests_total


def install_http_middleware(app: FastAPI) -> None:
    """Record request count/latency and bind a trace id for every HTTP call."""

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        trace_token = trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
        order_token = order_id_ctx.set("")
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            trace_id_ctx.reset(trace_token)
            order_id_ctx.reset(order_token)
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()


def install_error_handlers(app: FastAPI) -> None:
    """Render service errors as `{"error": {"status", "message", "details"?}}`."""

    @app.exception_handler(PayBridgeError)
    async def paybridge_error_handler(_: Request, exc: PayBridgeError) -> JSONResponse:
        return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})
