import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from field_readings.config import settings
from field_readings.api.v1 import auth, communities, meters, readings
from field_readings.core.exceptions import FieldReadingsError
from field_readings.database import init_db, close_db
from field_readings.middleware.logging import LoggingMiddleware
from field_readings.middleware.monitoring import MonitoringMiddleware
from field_readings.middleware.request_id import RequestIDMiddleware
from field_readings.middleware.security import SecurityHeadersMiddleware
from field_readings.monitoring import metrics
from field_readings.services.health_service import get_detailed_health

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        await init_db()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.ENVIRONMENT})")
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    **Field Readings API** - meter readings captured on site

    ## Features
		* Field user login with a session cookie
		* Community meter lists with the current reading of each meter
		* All-or-nothing bulk saving of a field visit's readings
		* Per-community meter ordering
    """,
    version=settings.APP_VERSION,
    openapi_tags=[
        {"name": "auth", "description": "Field user sessions"},
        {"name": "communities", "description": "Community lookup"},
        {"name": "meters", "description": "Community meter lists and ordering"},
        {"name": "readings", "description": "Reading submissions"},
        {"name": "monitoring", "description": "System monitoring"},
    ],
    docs_url="/docs",
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# =====================================
# Error handlers
# =====================================
@app.exception_handler(FieldReadingsError)
async def field_readings_error_handler(request: Request, exc: FieldReadingsError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, **exc.extra},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Invalid request on {request.method} {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return JSONResponse(
        status_code=400,
        content={"message": f"Invalid request: {location} {first.get('msg', '')}".strip()},
    )


# =====================================
# Configure Middleware Stack
# =====================================

# GZIP Compression (minimum 1KB)
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Trusted Host validation (production only)
if not settings.DEBUG:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)

app.add_middleware(MonitoringMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Include routers
app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])
app.include_router(communities.router, prefix=f"{settings.API_PREFIX}/communities", tags=["communities"])
app.include_router(meters.router, prefix=f"{settings.API_PREFIX}/meters", tags=["meters"])
app.include_router(readings.router, prefix=f"{settings.API_PREFIX}/readings", tags=["readings"])

# Monitoring endpoints (internal use)
if settings.EXPOSE_METRICS:
    app.include_router(
        metrics.router,
        prefix="/internal",
        tags=["monitoring"]
    )


@app.get("/health", tags=["monitoring"])
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
    }


@app.get("/health/detailed", tags=["monitoring"])
async def detailed_health_check():
    return await get_detailed_health()
