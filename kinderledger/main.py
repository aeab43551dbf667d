"""ASGI entry point: app assembly, lifespan and error rendering"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from kinderledger.config import settings
from kinderledger.database import init_db, close_db
from kinderledger.core.exceptions import BillingError
from kinderledger.core.logging import setup_logging, get_logger
from kinderledger.core.middleware import (
    RequestIDMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware
)
from kinderledger.api.v1.router import api_router
from kinderledger.schemas.responses import ErrorResponse
from kinderledger.services.scheduler import BillingScheduler

setup_logging()
logger = get_logger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)


def _request_context(request: Request) -> dict:
    return {
        "path": request.url.path,
        "correlation_id": getattr(request.state, "request_id", None),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Billing service starting", extra={"environment": settings.ENVIRONMENT})

    # Local databases get create_all; everything else is migrated with Alembic
    if settings.is_development:
        await init_db()

    scheduler = None
    if settings.BILLING_SCHEDULER_ENABLED:
        scheduler = BillingScheduler(settings.BILLING_JOB_INTERVAL_SECONDS)
        scheduler.start()
    app.state.billing_scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        await close_db()
        logger.info("Billing service stopped")


async def billing_error_handler(request: Request, exc: BillingError):
    logger.warning(exc.message, extra={**_request_context(request), "code": exc.code})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.of(exc.code, exc.message).model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning("Request validation failed", extra={**_request_context(request), "errors": errors})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": errors, "body": exc.body}),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", extra=_request_context(request), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.of("INTERNAL_ERROR", "Internal server error").model_dump(),
    )


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Billing and financial reconciliation for a kindergarten and its extra courses",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(BillingError, billing_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Last added runs first: request id is assigned before timing and headers
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=[settings.ALLOWED_HEADERS],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["Health"])
@limiter.exempt
async def health_check(request: Request):
    scheduler = getattr(request.app.state, "billing_scheduler", None)
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "scheduler_running": bool(scheduler and scheduler.is_running),
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"{settings.APP_NAME} is up",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kinderledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
