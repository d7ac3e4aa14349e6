"""
Sentinel Risk Engine — FastAPI Application Entry Point

/v1/risk/*     → profiles, VaR, metrics, summary
GET /metrics   → Prometheus
GET /docs      → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from sentinel_risk.api.dependencies import get_risk_service
from sentinel_risk.api.risk_endpoint import router as risk_router
from sentinel_risk.core.config import get_settings
from sentinel_risk.core.exceptions import (
    ExternalServiceUnavailableError,
    NotFoundError,
    ProfileTypeMismatchError,
)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer() if get_settings().app_env == "development"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(get_settings().log_level),
)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("risk_engine_starting", env=get_settings().app_env, store=get_settings().store_backend)
    yield
    await get_risk_service().aclose()
    logger.info("risk_engine_shutting_down")


app = FastAPI(
    title="Sentinel Risk Engine",
    description="Customer risk scoring, Basel III credit parameters and portfolio VaR",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ── Domain errors → HTTP ──
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info("resource_not_found", entity=exc.entity, value=exc.value, path=request.url.path)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ProfileTypeMismatchError)
async def profile_type_mismatch_handler(request: Request, exc: ProfileTypeMismatchError):
    logger.warning(
        "profile_type_mismatch",
        customer_id=exc.customer_id,
        existing=exc.existing,
        requested=exc.requested,
    )
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ExternalServiceUnavailableError)
async def upstream_unavailable_handler(request: Request, exc: ExternalServiceUnavailableError):
    logger.error("upstream_unavailable", service=exc.service, detail=exc.detail, path=request.url.path)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ── Prometheus metrics ──
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ──
app.include_router(risk_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "sentinel-risk-engine",
        "version": "1.0.0",
        "docs": "/docs",
        "profiles": "POST /v1/risk/profiles",
    }
