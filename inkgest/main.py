# inkgest/main.py
from __future__ import annotations

# Load .env early so os.getenv works everywhere
from dotenv import load_dotenv
load_dotenv()

import secrets
import time
from contextlib import asynccontextmanager

import sqlalchemy as sa
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from inkgest.core.config import settings
from inkgest.core.errors import ErrorSeverity, error_aggregator, log_error, register_exception_handlers
from inkgest.core.logging import LoggingMiddleware, get_logger, setup_logging
from inkgest.db.session import engine, get_session
from inkgest.services.channels import MessagingGateway

# Routers
from inkgest.api.routes.appointments import router as appointments_router
from inkgest.api.routes.clients import router as clients_router
from inkgest.api.routes.reminders import router as reminders_router

setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.gateway = MessagingGateway(settings)
    if not settings.INKGEST_API_KEY:
        logger.warning("api_key_gate_disabled", reason="INKGEST_API_KEY not set")
    logger.info("startup", env=settings.APP_ENV, whatsapp=app.state.gateway.whatsapp_configured)
    yield
    logger.info("shutdown")
    await engine.dispose()


app = FastAPI(title="InkGest", description="Studio appointments and reminder workflow", lifespan=lifespan)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}


@app.get("/readyz", include_in_schema=False)
async def readyz(db: AsyncSession = Depends(get_session)):
    await db.execute(sa.text("SELECT 1"))
    return {"ok": True, "db": "ok"}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Error summary for monitoring."""
    try:
        return {
            "status": "healthy",
            "errors": error_aggregator.get_error_summary(),
            "timestamp": time.time(),
        }
    except Exception as e:
        log_error(e, {"endpoint": "/metrics"}, ErrorSeverity.MEDIUM)
        return {"status": "error", "message": "Metrics collection failed"}


# -------- Global API key gate --------
PUBLIC_EXACT = {
    "/healthz",
    "/readyz",
    "/metrics",
    "/docs",
    "/openapi.json",
    "/favicon.ico",
}

# Public prefixes (still may be guarded by their own logic)
PUBLIC_PREFIXES = (
    "/appointments/confirm/",  # client confirmation links
)


def _is_public(request: Request) -> bool:
    path = request.url.path
    if path in PUBLIC_EXACT or any(path.startswith(p) for p in PUBLIC_PREFIXES):
        return True
    # Dispatch trigger authenticates with the cron bearer secret
    return path == "/reminders" and request.method == "PUT"


@app.middleware("http")
async def require_api_key(request: Request, call_next):
    expected = settings.INKGEST_API_KEY
    if not expected or request.method == "OPTIONS" or _is_public(request):
        return await call_next(request)

    api_key = request.headers.get("X-API-Key", "")
    if not secrets.compare_digest(api_key, expected):
        log_error(Exception("API key validation failed"),
                  {"endpoint": request.url.path, "has_key": bool(api_key)},
                  ErrorSeverity.MEDIUM)
        return JSONResponse({"success": False, "error": "Invalid or missing API key"}, status_code=401)

    return await call_next(request)


# Outermost, so key-gate rejections are logged and carry X-Correlation-ID
app.middleware("http")(LoggingMiddleware(
    log_requests=settings.LOG_REQUESTS,
    log_responses=settings.LOG_RESPONSES,
    slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
))


# -------- Include routers --------
app.include_router(appointments_router)
app.include_router(reminders_router)
app.include_router(clients_router)
