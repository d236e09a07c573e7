"""Rate limiting middleware for API endpoints.

Implements per-user request throttling so a single account cannot flood
the AI provider. Uses a sliding window with in-memory counters.

Limits:
- Generation endpoints (``/generations``): ``GENERATION_RATE_LIMIT``
  requests per minute per user
"""

from __future__ import annotations

import asyncio
import time
import logging
from typing import Dict, Optional
from collections import defaultdict
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse

from app.core.config import settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60  # 1 minute window
GENERATION_PATHS = ("/generations",)

# Format: {user_id: [(timestamp, endpoint_type), ...]}
_request_history: Dict[str, list] = defaultdict(list)
_lock = asyncio.Lock()


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window: int, retry_after: int):
        """Initialize with limit details.

        Args:
            limit: Maximum requests allowed
            window: Time window in seconds
            retry_after: Seconds until next request allowed
        """
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Rate limit exceeded",
                "limit": limit,
                "window_seconds": window,
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )


def _clean_old_requests(user_id: str, current_time: float) -> None:
    cutoff_time = current_time - WINDOW_SECONDS
    _request_history[user_id] = [
        (ts, endpoint) for ts, endpoint in _request_history[user_id]
        if ts > cutoff_time
    ]
    # Evict empty entries to prevent unbounded memory growth
    if not _request_history[user_id]:
        del _request_history[user_id]


def _get_request_count(user_id: str, endpoint_type: str, current_time: float) -> int:
    """Count recent requests for a specific endpoint type."""
    cutoff_time = current_time - WINDOW_SECONDS
    return sum(
        1 for ts, ep_type in _request_history.get(user_id, [])
        if ts > cutoff_time and ep_type == endpoint_type
    )


def _seconds_until_reset(user_id: str, endpoint_type: str, current_time: float) -> int:
    oldest_request_time = min(
        ts for ts, ep_type in _request_history[user_id]
        if ep_type == endpoint_type
    )
    return int(WINDOW_SECONDS - (current_time - oldest_request_time)) + 1


async def check_rate_limit(user_id: str, endpoint_type: str = "generation") -> None:
    """Check if user has exceeded rate limit for endpoint type.

    Args:
        user_id: User identifier
        endpoint_type: Bucket name, currently only "generation"

    Raises:
        RateLimitExceeded: If rate limit is exceeded
    """
    if not user_id:
        # Unauthenticated requests are rejected by the auth dependency
        return

    async with _lock:
        current_time = time.time()
        _clean_old_requests(user_id, current_time)

        limit = settings.GENERATION_RATE_LIMIT
        request_count = _get_request_count(user_id, endpoint_type, current_time)

        if request_count >= limit:
            retry_after = _seconds_until_reset(user_id, endpoint_type, current_time)
            logger.warning(
                "Rate limit exceeded for user %s: %d/%d %s requests in %ds",
                user_id, request_count, limit, endpoint_type, WINDOW_SECONDS,
            )
            raise RateLimitExceeded(limit, WINDOW_SECONDS, retry_after)

        _request_history[user_id].append((current_time, endpoint_type))

        logger.debug(
            "Rate limit check passed: user=%s, count=%d/%d, type=%s",
            user_id, request_count + 1, limit, endpoint_type,
        )


async def get_rate_limit_info(user_id: str, endpoint_type: str = "generation") -> Dict[str, int]:
    """Get current rate limit status for a user.

    Returns:
        Dict with limit, remaining, and reset info
    """
    if not user_id:
        return {"limit": 0, "remaining": 0, "reset_in": 0}

    async with _lock:
        current_time = time.time()
        _clean_old_requests(user_id, current_time)

        limit = settings.GENERATION_RATE_LIMIT
        request_count = _get_request_count(user_id, endpoint_type, current_time)

        if request_count > 0:
            reset_in = _seconds_until_reset(user_id, endpoint_type, current_time)
        else:
            reset_in = WINDOW_SECONDS

        return {
            "limit": limit,
            "remaining": max(0, limit - request_count),
            "reset_in": reset_in,
        }


def _user_id_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    from app.services.auth.security import decode_token, extract_user_id
    return extract_user_id(decode_token(auth_header[7:]))


async def rate_limit_middleware(request: Request, call_next):
    """FastAPI middleware for rate limiting.

    Only POSTs to generation endpoints are counted; their responses carry
    ``X-RateLimit-*`` headers. The user id comes from
    the JWT in the Authorization header; requests without one pass through
    and are rejected by the route's auth dependency.
    """
    rate_key = None
    if request.method == "POST" and request.url.path.rstrip("/") in GENERATION_PATHS:
        rate_key = _user_id_from_request(request)
        if rate_key:
            try:
                await check_rate_limit(rate_key, "generation")
            except RateLimitExceeded as e:
                return JSONResponse(
                    status_code=e.status_code,
                    content=e.detail,
                    headers=e.headers,
                )

    response = await call_next(request)

    if rate_key:
        info = await get_rate_limit_info(rate_key, "generation")
        response.headers["X-RateLimit-Limit"] = str(info["limit"])
        response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
        response.headers["X-RateLimit-Reset"] = str(info["reset_in"])

    return response


def reset_rate_limits() -> None:
    """Forget all recorded requests."""
    _request_history.clear()
