from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from . import routes
from .database import Database
from .errors import register_exception_handlers
from .logging_setup import setup_logging
from .routes import members
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter("request_count", "Total requests", ["method", "endpoint"])
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Request latency", ["endpoint"]
)


def _endpoint_label(request: Request) -> str:
    # label by route template so ids do not explode the series count
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    database = Database.from_settings(settings)
    if settings.AUTO_CREATE_SCHEMA:
        database.create_all()
    app.state.database = database
    logger.info("Database ready")
    try:
        yield
    finally:
        database.dispose()
        logger.info("Database disposed")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN, integrations=[FastApiIntegration()])

    app = FastAPI(title="Stockroom API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.limiter = members.limiter

    @app.middleware("http")
    async def record_metrics(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        endpoint = _endpoint_label(request)
        REQUEST_COUNT.labels(request.method, endpoint).inc()
        REQUEST_LATENCY.labels(endpoint).observe(time.time() - start)
        return response

    register_exception_handlers(app)

    @app.get("/health")
    def health(request: Request):
        status = request.app.state.database.ping()
        code = 200 if status["status"] == "healthy" else 503
        return JSONResponse(status_code=code, content=status)

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for name in routes.__all__:
        app.include_router(getattr(routes, name).router)

    return app


app = create_app()
