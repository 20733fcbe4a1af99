from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.responses import Response

from planboard.api.v1.router import api_router
from planboard.config import APP_VERSION, _DEFAULT_SECRET_KEYS, settings
from planboard.core.errors import register_exception_handlers
from planboard.core.logging_config import configure_logging
from planboard.core.metrics import app_info
from planboard.core.rate_limit import limiter
from planboard.database import dispose_engine, init_models
from planboard.middleware.prometheus import PrometheusMiddleware

configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def check_secret_key() -> None:
    """Refuse startup with a placeholder secret outside development."""
    if settings.SECRET_KEY not in _DEFAULT_SECRET_KEYS:
        return
    if settings.ENVIRONMENT != "development":
        raise RuntimeError(
            "SECRET_KEY must be set to a strong random value in production. "
            'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(64))"'
        )
    logger.warning(
        "Using default SECRET_KEY, acceptable for development only. "
        "Set a strong SECRET_KEY before deploying to production."
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_secret_key()

    await init_models()

    logger.info("Planboard %s started (%s)", APP_VERSION, settings.ENVIRONMENT)
    yield
    await dispose_engine()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
    openapi_url="/api/openapi.json" if settings.ENVIRONMENT == "development" else None,
)

app_info.info({"version": APP_VERSION, "environment": settings.ENVIRONMENT})

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
