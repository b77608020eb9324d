"""
FastAPI middleware for correlation ID propagation and request tracing.
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.exceptions import InternalServerError
from app.core.logging import correlation_context, get_logger, log_business_event

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation ID to requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())[:8]

        with correlation_context(correlation_id=correlation_id):
            logger.info("Request started", method=request.method, path=request.url.path)
            start_time = time.time()

            try:
                response = await call_next(request)
            except Exception as e:
                processing_time_ms = round((time.time() - start_time) * 1000, 2)
                logger.error(
                    "Request failed",
                    method=request.method,
                    path=request.url.path,
                    error=str(e),
                    processing_time_ms=processing_time_ms,
                    exc_info=True,
                )
                log_business_event(
                    "http_request_failed",
                    method=request.method,
                    path=request.url.path,
                    error_type=type(e).__name__,
                    processing_time_ms=processing_time_ms,
                )
                error = InternalServerError()
                return JSONResponse(
                    status_code=error.status_code,
                    content=error.to_dict(),
                    headers={CORRELATION_HEADER: correlation_id},
                )

            processing_time_ms = round((time.time() - start_time) * 1000, 2)
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                processing_time_ms=processing_time_ms,
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            response.headers["X-Processing-Time-MS"] = str(processing_time_ms)
            return response
