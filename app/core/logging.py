"""
Structured logging configuration with correlation IDs and request context.
"""
import logging
import random
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

from app.core.config import get_settings

# Context variables for request-scoped data
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def add_correlation_id(
    logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add correlation ID to log events."""
    correlation_id = correlation_id_var.get()
    if not correlation_id:
        correlation_id = str(uuid.uuid4())[:8]
        correlation_id_var.set(correlation_id)

    event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def add_service_context(
    logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add service context to log events."""
    settings = get_settings()
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.service_version
    return event_dict


def add_timestamp(
    logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add ISO format timestamp to log events."""
    event_dict["timestamp"] = time.time()
    event_dict["iso_timestamp"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    return event_dict


class LogSampler:
    """Log sampler for high-volume scenarios."""

    def __init__(self, sample_rate: float = 1.0):
        self.sample_rate = max(0.0, min(1.0, sample_rate))

    def should_log(self, method_name: str) -> bool:
        """Warnings and errors are always kept; other levels are sampled."""
        if method_name in ("warning", "error", "critical", "exception"):
            return True
        if self.sample_rate >= 1.0:
            return True
        if self.sample_rate <= 0.0:
            return False
        return random.random() < self.sample_rate


_log_sampler = LogSampler()


def drop_unsampled(
    logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Drop events rejected by the global sampler."""
    if not _log_sampler.should_log(method_name):
        raise structlog.DropEvent
    return event_dict


def setup_logging(log_level: Optional[str] = None, sample_rate: Optional[float] = None) -> None:
    """
    Configure structured JSON logging.

    Args:
        log_level: Minimum stdlib level name; defaults to settings.log_level
        sample_rate: Sampling rate for info/debug logs (0.0-1.0)
    """
    global _log_sampler
    settings = get_settings()
    level_name = (log_level or settings.log_level).upper()
    _log_sampler = LogSampler(settings.log_sample_rate if sample_rate is None else sample_rate)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            drop_unsampled,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_timestamp,
            add_service_context,
            add_correlation_id,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def get_business_logger() -> structlog.stdlib.BoundLogger:
    """Get a business event logger instance."""
    return structlog.get_logger("business")


def get_correlation_id() -> Optional[str]:
    """Get correlation ID from current context."""
    return correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """
    Context manager for setting correlation context.

    The previous correlation ID is restored on exit.
    """
    token = correlation_id_var.set(correlation_id) if correlation_id else None
    try:
        yield
    finally:
        if token is not None:
            correlation_id_var.reset(token)


def log_business_event(event_type: str, **kwargs) -> None:
    """
    Log a structured business event.

    Args:
        event_type: Type of business event
        **kwargs: Additional event data
    """
    logger = get_business_logger()
    logger.info("Business event", event_type=event_type, **kwargs)
