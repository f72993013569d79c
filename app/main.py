"""
Profile Service — FastAPI Application Entry Point

Wires together:
- Async lifespan management (DB pool, Redis lock backend, RabbitMQ publisher)
- Request-scoped logging context, request timeout and CORS middleware
- Domain-error to HTTP-status translation
- Liveness and deep readiness probes
- In-flight request tracking so shutdown can drain before closing resources
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.config import get_settings
from app.database import async_session_factory, engine
from app.errors import MessagingError, ProfileServiceError
from app.messaging.publisher import get_publisher
from app.services.locks import configure_lock_manager
from app.utils import storage

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO)
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger("profile_service")


# ---------------------------------------------------------------------------
# In-flight request tracking
# ---------------------------------------------------------------------------

class InFlightRequests:
    """Counts requests being served; ``drain`` waits for the count to hit zero.

    All mutation happens on the event loop thread, so no lock is needed.
    """

    def __init__(self) -> None:
        self.count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    def enter(self) -> None:
        self.count += 1
        self._idle.clear()

    def leave(self) -> None:
        self.count -= 1
        if self.count <= 0:
            self.count = 0
            self._idle.set()

    async def drain(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("drain_timeout_exceeded", remaining_requests=self.count)
            return False
        return True


in_flight = InFlightRequests()


# ---------------------------------------------------------------------------
# Redis (optional lock backend)
# ---------------------------------------------------------------------------

_redis_client = None


async def _connect_redis(url: str) -> None:
    global _redis_client
    import redis.asyncio as aioredis

    if not url:
        logger.info("redis_skip", reason="REDIS_URL not configured")
        return

    client = aioredis.from_url(url, decode_responses=True, socket_connect_timeout=5)
    await client.ping()
    _redis_client = client
    logger.info("redis_connected")


async def _close_redis() -> None:
    global _redis_client
    if _redis_client is None:
        return
    await _redis_client.aclose()
    _redis_client = None
    logger.info("redis_closed")


def get_redis():
    """Return the shared Redis client, or None when running without one."""
    return _redis_client


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("startup_begin", environment=settings.ENVIRONMENT)

    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_pool_initialised")

    await _connect_redis(settings.REDIS_URL)
    configure_lock_manager(get_redis(), settings.USER_LOCK_TIMEOUT_SECONDS)

    publisher = get_publisher()
    await publisher.connect()

    logger.info("startup_complete")
    yield
    logger.info("shutdown_begin")

    # Drain first: in-flight handlers still publish.
    await in_flight.drain(settings.SHUTDOWN_DRAIN_SECONDS)
    await publisher.close()
    await _close_redis()
    await engine.dispose()

    logger.info("shutdown_complete")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request runs past ``timeout_seconds``."""

    def __init__(self, app, timeout_seconds: float) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("request_timeout", timeout=self.timeout_seconds)
            return JSONResponse(status_code=504, content={"detail": "Request timed out"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the log context and log one line per request.

    The id is taken from ``X-Request-ID`` when the caller sends one and is
    echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        in_flight.enter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_error", duration_ms=_elapsed_ms(start))
            raise
        finally:
            in_flight.leave()

        response.headers["X-Request-ID"] = request_id
        logger.info("request_handled", status=response.status_code, duration_ms=_elapsed_ms(start))
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


# ---------------------------------------------------------------------------
# Domain error translation
# ---------------------------------------------------------------------------

async def profile_service_error_handler(
    request: Request, exc: ProfileServiceError
) -> JSONResponse:
    log = logger.bind(error_type=type(exc).__name__, status=exc.status_code)
    if isinstance(exc, MessagingError):
        log.error("event_not_published", detail=exc.message, note="mutation may be committed")
    elif exc.status_code >= 500:
        log.error("request_failed", detail=exc.message)
    else:
        log.info("request_rejected", detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

settings = get_settings()

app = FastAPI(
    title="Profile Service",
    description="User profiles, photos and tags with downstream change events",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# Last added runs outermost.
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ProfileServiceError, profile_service_error_handler)


@app.get("/health", tags=["health"])
async def health_liveness() -> dict:
    """Liveness probe."""
    return {"status": "healthy"}


@app.get("/health/deep", tags=["health"])
async def health_deep() -> dict:
    """Readiness probe covering every backing service.

    A failing dependency marks the result ``degraded`` instead of raising,
    so the probe itself always answers.
    """
    checks: dict[str, str] = {}

    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception as exc:
        logger.error("health_db_failure", error=str(exc))
        checks["database"] = f"error: {exc}"

    redis = get_redis()
    if redis is None:
        checks["redis"] = "not_configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "connected"
        except Exception as exc:
            logger.error("health_redis_failure", error=str(exc))
            checks["redis"] = f"error: {exc}"

    if get_publisher().is_connected:
        checks["rabbitmq"] = "connected"
    else:
        logger.error("health_rabbitmq_failure")
        checks["rabbitmq"] = "error: disconnected"

    if not get_settings().GCS_BUCKET_NAME:
        checks["gcs"] = "not_configured"
    else:
        try:
            await asyncio.to_thread(storage.bucket_exists)
            checks["gcs"] = "accessible"
        except Exception as exc:
            logger.error("health_gcs_failure", error=str(exc))
            checks["gcs"] = f"error: {exc}"

    degraded = any(value.startswith("error") for value in checks.values())
    return {"status": "degraded" if degraded else "healthy", **checks}


from app.api.router import router as api_router  # noqa: E402

app.include_router(api_router)
