"""OpenRouter chat-completions client.

Sends a :class:`ChatSession` to the OpenRouter endpoint with:
- Bearer-token auth and a per-call timeout
- Retry with exponential back-off + jitter on transient failures
  (408/429/5xx statuses, client timeouts, network errors)
- Response envelope validation, including a JSON check when a structured
  response format is configured

All functions are async and take the session explicitly; nothing is cached
between calls.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from app.core.config import settings
from app.services.llm_service.llm_schemas import ChatCompletion, ChatMessage, ChatSession
from app.services.llm_service.session import (
    ChatConfigurationError,
    add_message,
    format_message,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]

RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({408, 429, 500, 502, 503, 504})


class OpenRouterError(Exception):
    """Error returned by (or while reaching) the OpenRouter API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        is_retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable


class InvalidResponseError(Exception):
    """Raised when a 2xx response does not have the expected structure."""


# ── Configuration ─────────────────────────────────────────


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 10.0  # seconds
    jitter_ratio: float = 0.3
    retryable_status_codes: FrozenSet[int] = RETRYABLE_STATUS_CODES


class OpenRouterConfig(BaseModel):
    """Connection settings for one chat-completions endpoint."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    timeout: float = 30.0  # seconds, per HTTP call
    app_url: Optional[str] = None
    app_title: Optional[str] = None
    retry: RetryPolicy = RetryPolicy()


def make_openrouter_config(api_key: Optional[str] = None, **overrides: Any) -> OpenRouterConfig:
    """Build a config from settings, failing fast when no API key is available."""
    key = api_key or settings.OPENROUTER_API_KEY
    if not key:
        raise ChatConfigurationError("OpenRouter API key is required")

    values: Dict[str, Any] = {
        "api_key": key,
        "api_url": settings.OPENROUTER_API_URL,
        "timeout": settings.OPENROUTER_TIMEOUT_SECONDS,
        "app_url": settings.OPENROUTER_APP_URL,
        "app_title": settings.OPENROUTER_APP_TITLE,
        "retry": RetryPolicy(
            max_retries=settings.OPENROUTER_MAX_RETRIES,
            base_delay=settings.OPENROUTER_BASE_DELAY_SECONDS,
            max_delay=settings.OPENROUTER_MAX_DELAY_SECONDS,
        ),
    }
    values.update(overrides)
    return OpenRouterConfig(**values)


# ── Request building ──────────────────────────────────────


def build_request_payload(session: ChatSession) -> Dict[str, Any]:
    """Serialize the session into the chat-completions request body."""
    cfg = session.model_settings
    payload: Dict[str, Any] = {
        "model": cfg.model_name,
        "messages": [m.model_dump() for m in session.messages],
    }
    for key in ("temperature", "max_tokens", "top_p", "frequency_penalty", "presence_penalty"):
        value = getattr(cfg, key)
        if value is not None:
            payload[key] = value

    if session.response_format is not None:
        payload["response_format"] = session.response_format.model_dump(by_alias=True)
    return payload


def _build_headers(config: OpenRouterConfig) -> Dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {config.api_key}",
    }
    # Optional attribution headers used by OpenRouter analytics
    if config.app_url:
        headers["HTTP-Referer"] = config.app_url
    if config.app_title:
        headers["X-Title"] = config.app_title
    return headers


# ── Retry ─────────────────────────────────────────────────


def compute_backoff_delay(
    attempt: int,
    policy: RetryPolicy,
    rand: Optional[Callable[[], float]] = None,
) -> float:
    """Delay in seconds before retry number ``attempt + 1`` (``attempt`` is 0-based)."""
    exponential = policy.base_delay * (2 ** attempt)
    jitter = (rand or random.random)() * policy.jitter_ratio * exponential
    return min(exponential + jitter, policy.max_delay)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    detail = ""
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        detail = body["error"].get("message") or ""
    return f"OpenRouter API error: {response.status_code} {response.reason_phrase}. {detail}".strip()


async def _execute_request(
    client: httpx.AsyncClient,
    session: ChatSession,
    config: OpenRouterConfig,
) -> Dict[str, Any]:
    """Single HTTP round-trip. Maps failures onto :class:`OpenRouterError`."""
    try:
        response = await client.post(
            config.api_url,
            json=build_request_payload(session),
            headers=_build_headers(config),
            timeout=config.timeout,
        )
    except httpx.TimeoutException as exc:
        raise OpenRouterError(
            f"Request timeout after {config.timeout}s", status_code=408, is_retryable=True
        ) from exc
    except httpx.TransportError as exc:
        raise OpenRouterError(f"Network error: {exc}", is_retryable=True) from exc

    if not response.is_success:
        raise OpenRouterError(
            _error_message(response),
            status_code=response.status_code,
            is_retryable=response.status_code in config.retry.retryable_status_codes,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise InvalidResponseError("Invalid API response: body is not valid JSON") from exc


async def send_with_retry(
    client: httpx.AsyncClient,
    session: ChatSession,
    config: OpenRouterConfig,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> Dict[str, Any]:
    """Execute the request, retrying retryable :class:`OpenRouterError` failures."""
    policy = config.retry
    attempt = 0
    while True:
        try:
            return await _execute_request(client, session, config)
        except OpenRouterError as exc:
            if not exc.is_retryable or attempt >= policy.max_retries:
                raise
            delay = compute_backoff_delay(attempt, policy)
            logger.warning(
                "OpenRouter retry %d/%d after %dms: %s",
                attempt + 1, policy.max_retries, round(delay * 1000), exc,
            )
            await sleep(delay)
            attempt += 1


# ── Response validation ───────────────────────────────────


def validate_completion(raw: Any, *, expect_json: bool) -> ChatCompletion:
    """Check the envelope has a first choice with a message (and JSON content if required)."""
    if not isinstance(raw, dict) or not raw.get("choices"):
        raise InvalidResponseError("Invalid API response: no choices returned")
    first = raw["choices"][0]
    if not isinstance(first, dict) or not first.get("message"):
        raise InvalidResponseError("Invalid API response: no message in first choice")

    try:
        completion = ChatCompletion.model_validate(raw)
    except ValidationError as exc:
        raise InvalidResponseError(f"Invalid API response: {exc}") from exc

    if expect_json:
        try:
            json.loads(completion.content)
        except (TypeError, json.JSONDecodeError) as exc:
            raise InvalidResponseError(
                "Invalid API response: expected JSON but got invalid format"
            ) from exc
    return completion


# ── Public API ────────────────────────────────────────────


async def send_message(
    session: ChatSession,
    content: str,
    role: str = "user",
    *,
    config: OpenRouterConfig,
    http_client: Optional[httpx.AsyncClient] = None,
    sleep: SleepFn = asyncio.sleep,
) -> Tuple[ChatSession, ChatCompletion]:
    """Append a message, call the API and return ``(new_session, completion)``.

    The returned session holds the sent message followed by the assistant
    reply. On failure the caller's session is left as it was.

    Raises:
        ChatConfigurationError: Empty content or unsupported role.
        OpenRouterError: Terminal HTTP status, or retries exhausted.
        InvalidResponseError: Malformed envelope or non-JSON structured content.
    """
    if not content or not content.strip():
        raise ChatConfigurationError("Message content cannot be empty")
    if role not in ("system", "user"):
        raise ChatConfigurationError(f"Unsupported message role: {role!r}")

    pending = add_message(session, format_message(content, role))

    try:
        if http_client is None:
            async with httpx.AsyncClient() as client:
                raw = await send_with_retry(client, pending, config, sleep=sleep)
        else:
            raw = await send_with_retry(http_client, pending, config, sleep=sleep)
        completion = validate_completion(raw, expect_json=pending.response_format is not None)
    except (OpenRouterError, InvalidResponseError) as exc:
        _log_error(exc, pending)
        raise

    reply = ChatMessage(role="assistant", content=completion.content)
    return add_message(pending, reply), completion


def _log_error(error: Exception, session: ChatSession) -> None:
    logger.error(
        "OpenRouter request failed: %s (type=%s, status=%s, history=%d, model=%s, at=%s)",
        error,
        type(error).__name__,
        getattr(error, "status_code", None),
        len(session.messages),
        session.model_settings.model_name,
        datetime.now(timezone.utc).isoformat(),
    )
