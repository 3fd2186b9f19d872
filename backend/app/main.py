from contextlib import asynccontextmanager

import sentry_sdk
import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from starlette.responses import Response

from app.catalog.routes import locations_router
from app.catalog.routes import router as services_router
from app.config import settings
from app.customers.routes import router as customers_router
from app.database import async_session
from app.errors import error_envelope, register_error_handlers
from app.installers.routes import router as installers_router
from app.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from app.reviews.routes import router as reviews_router
from app.utils.rate_limit import limiter

processors = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]
if settings.is_production:
    processors.append(structlog.processors.JSONRenderer())
else:
    processors.append(structlog.dev.ConsoleRenderer())

structlog.configure(
    processors=processors,
    wrapper_class=structlog.make_filtering_bound_logger(0),
)

logger = structlog.get_logger()

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.1,
        environment=settings.APP_ENV,
        send_default_pii=False,
    )


async def _check_migration_version() -> None:
    """Warn when the database is not at the alembic head. Never raises."""
    try:
        from alembic.config import Config as AlembicConfig
        from alembic.script import ScriptDirectory

        head_rev = ScriptDirectory.from_config(AlembicConfig("alembic.ini")).get_current_head()

        async with async_session() as session:
            conn = await session.connection()

            def _current_rev(connection):
                if not connection.dialect.has_table(connection, "alembic_version"):
                    return None
                row = connection.execute(text("SELECT version_num FROM alembic_version")).fetchone()
                return row[0] if row else None

            current_rev = await conn.run_sync(_current_rev)

        if current_rev is None:
            logger.warning("alembic_version_check", status="no_alembic_version_table")
        elif current_rev != head_rev:
            logger.warning("alembic_version_mismatch", current=current_rev, head=head_rev)
        else:
            logger.info("alembic_version_ok", version=current_rev)
    except Exception as exc:
        logger.warning("alembic_version_check_failed", error=str(exc))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("instalatori_startup", env=settings.APP_ENV)
    await _check_migration_version()
    yield
    logger.info("instalatori_shutdown")


app = FastAPI(
    title="Instalatori API",
    description="Marketplace connecting customers with home-repair installers in Romania",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.state.limiter = limiter
register_error_handlers(app)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unhandled errors become a generic 500 envelope outside development."""
    logger.exception("unhandled_exception", path=request.url.path)
    if settings.APP_ENV != "development":
        return JSONResponse(status_code=500, content=error_envelope("Internal server error"))
    raise exc


# Middleware is LIFO: the last one added runs first.
if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    if not settings.cors_origins_list:
        logger.warning("cors_origins_empty_in_production", app_env=settings.APP_ENV)
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(SecurityHeadersMiddleware, is_production=settings.is_production)
app.add_middleware(RequestContextMiddleware)


HTTP_REQUESTS = Counter(
    "instalatori_http_requests_total", "Total HTTP requests", ["method", "status", "handler"]
)
HTTP_LATENCY = Histogram(
    "instalatori_http_request_duration_seconds",
    "Request latency",
    ["method", "handler"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)


def _http_metrics(info) -> None:
    # Replaces the instrumentator's default metric, which breaks on
    # non-numeric Content-Length headers.
    HTTP_REQUESTS.labels(info.method, info.modified_status, info.modified_handler).inc()
    HTTP_LATENCY.labels(info.method, info.modified_handler).observe(info.modified_duration)


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/health", "/metrics"],
).add(_http_metrics).instrument(app)


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(request: Request):
    """Prometheus exposition, guarded by the X-Metrics-Key header when a key is configured."""
    if settings.is_production and not settings.METRICS_API_KEY:
        raise HTTPException(status_code=503, detail="Metrics not available")
    if settings.METRICS_API_KEY and request.headers.get("x-metrics-key", "") != settings.METRICS_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid metrics API key")
    return Response(content=generate_latest(), media_type="text/plain; version=0.0.4; charset=utf-8")


app.include_router(installers_router, prefix="/installers", tags=["installers"])
app.include_router(reviews_router, prefix="/reviews", tags=["reviews"])
app.include_router(customers_router, prefix="/customers", tags=["customers"])
app.include_router(services_router, prefix="/services", tags=["catalog"])
app.include_router(locations_router, prefix="/locations", tags=["catalog"])


@app.get("/health")
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Database and Redis connectivity. The API keeps serving without Redis."""
    try:
        async with async_session() as db:
            await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("health_database_unreachable")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "disconnected", "redis": "unknown"},
        )

    redis_state = "connected"
    try:
        import redis.asyncio as aioredis

        client = aioredis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
        await client.ping()
        await client.aclose()
    except Exception:
        redis_state = "unavailable"

    status = "ok"
    if settings.is_production and redis_state != "connected":
        status = "degraded"
    return {"status": status, "database": "connected", "redis": redis_state}
