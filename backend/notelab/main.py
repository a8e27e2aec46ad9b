from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
import logging
from contextlib import asynccontextmanager

from notelab.config import get_settings
from notelab.database import get_db, check_db_connection
from notelab.api.auth_routes import router as auth_router
from notelab.api.user_routes import router as user_router
from notelab.api.note_routes import router as note_router
from notelab.api.category_routes import router as category_router
from notelab.logging_config import setup_logging, log_requests_middleware
from notelab.error_handlers import register_error_handlers
from notelab.middleware.security import SecurityHeadersMiddleware, RequestSizeLimitMiddleware
from notelab.responses import utc_timestamp
from notelab.services.token_service import jwt_secret_is_insecure

settings = get_settings()

setup_logging(
    log_level=settings.log_level,
    log_dir=settings.log_dir,
    app_name="notelab-api",
    enable_json=settings.log_json
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown tasks"""
    current = get_settings()
    logger.info(f"Starting {current.app_name} ({current.environment})...")

    # Validate JWT secret key is properly configured
    if jwt_secret_is_insecure(current.jwt_secret_key):
        _msg = (
            "JWT_SECRET_KEY is missing or set to a known insecure default. "
            "Generate a secure key with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
        if not current.is_development:
            raise RuntimeError(_msg)
        logger.warning(
            "INSECURE JWT_SECRET_KEY detected. %s "
            "This is allowed in development but MUST be fixed before deploying to production.",
            _msg,
        )

    yield

    logger.info("Shutting down application...")


app = FastAPI(
    title=settings.app_name,
    description="Note.Lab notes API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
)

# Add security headers middleware (added first, runs last)
if not settings.debug:
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.enable_hsts,
        frame_options="DENY",
    )

# Add request size limit middleware
app.add_middleware(
    RequestSizeLimitMiddleware,
    max_content_length=settings.max_request_size
)

# Add CORS middleware
cors_origins = settings.cors_origins if settings.cors_origins else (["*"] if settings.debug else [])
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

# Register error handlers
register_error_handlers(app)

# Add request logging middleware
if settings.enable_request_logging:
    app.middleware("http")(log_requests_middleware)

# Include API routers
app.include_router(auth_router, prefix="/api")
app.include_router(user_router, prefix="/api")
app.include_router(note_router, prefix="/api")
app.include_router(category_router, prefix="/api")


@app.get("/api/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness check with database connectivity test; no auth, no rate limit"""
    db_connected = check_db_connection(db)

    logger.debug("Health check performed", extra={"db_connected": db_connected})

    return {
        "status": "ok",
        "timestamp": utc_timestamp(),
        "version": settings.app_version,
        "database": "connected" if db_connected else "disconnected",
    }
