"""
Fundraiser service: fundraising progress, affiliate donation links and admin
statistics behind the API gateway.
"""
import asyncio
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog
import uvicorn

from fundraiser_service.api.admin import router as admin_router
from fundraiser_service.api.affiliate import router as affiliate_router
from fundraiser_service.api.donation import router as donation_router
from fundraiser_service.api.fundraising import router as fundraising_router
from fundraiser_service.cache.redis import redis_cache
from fundraiser_service.core.circuit_breaker import db_circuit_breaker
from fundraiser_service.core.config import get_settings
from fundraiser_service.core.exceptions import LedgerError
from fundraiser_service.database.database import engine, init_db, close_db
from fundraiser_service.kafka.consumer import kafka_consumer
from fundraiser_service.kafka.producer import kafka_producer
from fundraiser_service.middleware.logging import logging_middleware
from fundraiser_service.middleware.metrics import MetricsMiddleware, metrics_response
from fundraiser_service.middleware.tracing import init_tracing

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)
settings = get_settings()


async def _start_kafka():
    await kafka_producer.start()
    await kafka_consumer.start()
    return asyncio.create_task(kafka_consumer.consume_events(), name="payment-events")


async def _stop_kafka(consumer_task):
    if consumer_task is not None:
        consumer_task.cancel()
        try:
            await consumer_task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Payment event consumer task failed")
    await kafka_consumer.stop()
    await kafka_producer.stop()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Fundraiser service starting", service_name=settings.service_name)
    init_db()

    try:
        redis_cache.connect()
    except ConnectionError as e:
        logger.warning("Redis unavailable, serving aggregates uncached", error=str(e))

    consumer_task = None
    if settings.kafka_enabled:
        consumer_task = await _start_kafka()
    else:
        logger.info("Kafka disabled, payment outcomes arrive only through PATCH /donations/{id}/status")

    yield

    logger.info("Fundraiser service stopping")
    await _stop_kafka(consumer_task)
    redis_cache.close()
    close_db()


app = FastAPI(
    title=settings.app_name,
    description="Fundraising progress, affiliate donation links and admin statistics",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # the gateway is the only public entry point
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.middleware("http")(logging_middleware)

init_tracing(app, engine)


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Every ledger failure renders as {"error": code, "detail": message}"""
    log = logger.warning if exc.status_code >= 500 else logger.info
    log("Ledger request rejected", error=exc.code, detail=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", error=str(exc), method=request.method, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "An unexpected error occurred"},
    )


@app.get("/health", tags=["ops"])
async def health():
    return {"status": "healthy", "service": settings.service_name, "timestamp": time.time()}


@app.get("/health/ready", tags=["ops"])
async def ready():
    """Ready when the ledger database answers; cache and breaker state are informational"""
    status = {
        "status": "ready",
        "service": settings.service_name,
        "database": "connected",
        "cache": redis_cache.ping(),
        "circuit_breaker": db_circuit_breaker.snapshot(),
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Readiness database check failed", error=str(e))
        status.update(status="not ready", database=f"error: {e}")

    return JSONResponse(status_code=200 if status["status"] == "ready" else 503, content=status)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()


app.include_router(fundraising_router)
app.include_router(admin_router)
app.include_router(affiliate_router)
app.include_router(donation_router)


if __name__ == "__main__":
    uvicorn.run(
        "fundraiser_service.main:app",
        host="0.0.0.0",
        port=8004,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
