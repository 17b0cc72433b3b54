from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded

from manuscript_portal.core.config import settings
from manuscript_portal.core.database import close_db, init_db
from manuscript_portal.core.exceptions import setup_exception_handlers
from manuscript_portal.core.logging_config import logger
from manuscript_portal.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from manuscript_portal.core.rate_limiter import limiter, rate_limit_exceeded_handler
from manuscript_portal.api.router import api_router
from manuscript_portal.api.endpoints.health import health_report

PLACEHOLDER_SECRETS = {"", "secret"}
PLACEHOLDER_PREFIXES = ("change-me", "change_me", "changeme")


def is_placeholder_secret(value: str) -> bool:
    """True for empty values and the change-me style values shipped in .env.example"""
    value = (value or "").strip().lower()
    return value in PLACEHOLDER_SECRETS or value.startswith(PLACEHOLDER_PREFIXES)


def validate_critical_config() -> bool:
    """Validate critical configuration at startup - fail fast in production"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    for name in ("SECRET_KEY", "JWT_SECRET_KEY"):
        if is_placeholder_secret(getattr(settings, name)):
            if settings.is_production():
                errors.append(f"{name} is not set or using default value")
            else:
                warnings.append(f"{name} is using a placeholder value")

    if not settings.REDIS_URL:
        warnings.append("REDIS_URL not set - rate limits are kept in process memory")

    if not (settings.SMTP_USER and settings.SMTP_PASSWORD):
        warnings.append("SMTP not configured - email notifications are disabled")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] Critical configuration validated")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    validate_critical_config()

    settings.upload_path.mkdir(parents=True, exist_ok=True)
    await init_db()
    logger.info("[Startup] Database tables ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Digitized Jain manuscripts with researcher access control",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        redirect_slashes=False
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    setup_exception_handlers(app)

    # Order matters - last added runs first
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    # StaticFiles refuses to mount a missing directory
    settings.upload_path.mkdir(parents=True, exist_ok=True)
    app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.upload_path), name="uploads")

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Database-aware health check for load balancers"""
        return await health_report()

    @app.get("/", include_in_schema=False)
    async def root():
        return {"name": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}

    return app


app = create_app()


def run() -> None:
    import uvicorn
    uvicorn.run(
        "manuscript_portal.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.is_dev_mode()
    )


if __name__ == "__main__":
    run()
