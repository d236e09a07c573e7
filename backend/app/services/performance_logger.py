"""Performance monitoring middleware for API endpoints.

Tracks and logs performance metrics for monitored requests:
- Total request time (end-to-end)
- LLM latency (time spent in the AI phase of a generation)

Metrics are logged in structured format for analysis and alerting.
"""

from __future__ import annotations

import time
import logging
from typing import Optional, Dict
from contextvars import ContextVar
from fastapi import Request

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger("performance")

MONITORED_PATHS = ("/generations", "/flashcards")

# Per-request timings, mutated in place: endpoints run on a copied context
_request_metrics: ContextVar[Dict[str, float]] = ContextVar("request_metrics")


def _metrics_holder() -> Dict[str, float]:
    try:
        return _request_metrics.get()
    except LookupError:
        holder = {"start": time.time(), "llm_time": 0.0}
        _request_metrics.set(holder)
        return holder


def set_request_start_time() -> None:
    """Mark the start of request processing."""
    _request_metrics.set({"start": time.time(), "llm_time": 0.0})


def get_request_elapsed_time() -> float:
    """Get elapsed time since request start.

    Returns:
        Elapsed seconds, or 0.0 if not set
    """
    try:
        start = _request_metrics.get()["start"]
    except LookupError:
        return 0.0
    return time.time() - start


def record_llm_time(seconds: float) -> None:
    """Record time spent waiting on the LLM.

    Args:
        seconds: Elapsed time in seconds
    """
    _metrics_holder()["llm_time"] = seconds
    logger.debug("LLM generation completed in %.3fs", seconds)


def get_performance_metrics() -> Dict[str, float]:
    """Get all recorded performance metrics.

    Returns:
        Dict with llm_time and total_time
    """
    return {
        "llm_time": _metrics_holder()["llm_time"],
        "total_time": get_request_elapsed_time(),
    }


def log_performance_metrics(
    endpoint: str,
    method: str,
    status_code: int,
    user_id: Optional[str] = None,
) -> None:
    """Log performance metrics in structured format."""
    metrics = get_performance_metrics()
    other_time = max(0.0, metrics["total_time"] - metrics["llm_time"])

    perf_logger.info(
        "request_performance",
        extra={
            "endpoint": endpoint,
            "method": method,
            "status_code": status_code,
            "user_id": user_id or "anonymous",
            "total_time": round(metrics["total_time"], 3),
            "llm_time": round(metrics["llm_time"], 3),
            "other_time": round(other_time, 3),
        }
    )


async def performance_monitoring_middleware(request: Request, call_next):
    """FastAPI middleware for performance monitoring.

    Records request start time, processes request, then logs all metrics.
    Adds timing headers to responses in development.
    """
    set_request_start_time()

    response = await call_next(request)

    total_time = get_request_elapsed_time()
    user_id = getattr(request.state, "user_id", None)

    if any(p in request.url.path for p in MONITORED_PATHS):
        log_performance_metrics(
            endpoint=request.url.path,
            method=request.method,
            status_code=response.status_code,
            user_id=user_id,
        )

    # Only add performance headers in development (avoid leaking internals in prod)
    from app.core.config import settings
    if settings.ENVIRONMENT == "development":
        metrics = get_performance_metrics()
        response.headers["X-Response-Time"] = f"{total_time:.3f}s"
        if metrics["llm_time"] > 0:
            response.headers["X-LLM-Time"] = f"{metrics['llm_time']:.3f}s"

    return response


class PerformanceTimer:
    """Context manager for timing code blocks.

    Example:
        with PerformanceTimer() as timer:
            # ... do work ...
        record_llm_time(timer.elapsed)
    """

    def __init__(self):
        self.start_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self.start_time
        return False
