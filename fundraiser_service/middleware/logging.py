"""
Request context for structured logs.

Binds a request id, the OpenTelemetry trace id and the gateway user id into
structlog's context variables so every event logged while serving the request
(services, cache, Kafka publishing) carries them.
"""
import time
import uuid

from fastapi import Request
from opentelemetry import trace
import structlog

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


def _current_trace_id() -> str:
    context = trace.get_current_span().get_span_context()
    return format(context.trace_id, "032x") if context.is_valid else ""


async def logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        trace_id=_current_trace_id(),
        user_id=request.headers.get("x-user-id", ""),
    )

    started = time.perf_counter()
    logger.info("Request started", method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Request failed", method=request.method, path=request.url.path)
        raise
    finally:
        elapsed = time.perf_counter() - started

    route = request.scope.get("route")
    logger.info(
        "Request completed",
        method=request.method,
        route=getattr(route, "path", request.url.path),
        status_code=response.status_code,
        latency_ms=round(elapsed * 1000, 1),
    )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
