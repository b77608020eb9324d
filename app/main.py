"""Main FastAPI application for the Dispute Automation Service."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.collections import router as collections_router
from app.api.health import router as health_router
from app.api.reconciliation import router as reconciliation_router
from app.core.config import get_settings
from app.core.dependencies import get_payment_gateway
from app.core.exceptions import BaseAPIException, ValidationError, get_user_friendly_error_message
from app.core.logging import get_logger, setup_logging
from app.core.middleware import CorrelationIDMiddleware
from app.database import close_db, init_db

# Initialize logging
setup_logging()
logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup; release it and the gateway client on shutdown."""
    logger.info("Starting Dispute Automation Service", version=settings.service_version)
    app.state.start_time = time.time()
    await init_db()
    yield
    logger.info("Shutting down Dispute Automation Service")
    await get_payment_gateway().close()
    await close_db()


app = FastAPI(
    title="Dispute Automation Service",
    description="Reconciles utility bill collections against the payment gateway and files disputes",
    version=settings.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)

# CORS middleware
if settings.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include API routers
app.include_router(health_router)
app.include_router(reconciliation_router, prefix=settings.api_prefix)
app.include_router(collections_router, prefix=settings.api_prefix)


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    body = exc.to_dict()
    body["user_message"] = get_user_friendly_error_message(exc.error_code)
    if exc.status_code < 500:
        logger.info("Request rejected", path=request.url.path, error_code=exc.error_code, message=exc.detail)
    else:
        logger.error("Request failed", path=request.url.path, error_code=exc.error_code, message=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings are 400, not 422."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")

    error = ValidationError(message, field=field, errors=len(errors))
    logger.info("Request validation failed", path=request.url.path, field=field, message=message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
