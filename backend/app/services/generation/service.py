"""Flashcard generation pipeline.

``initiate_generation`` is the single entry point used by the API:

1. fingerprint the input text
2. insert a generation record (duration 0)
3. ask the model for flashcards under an overall deadline
4. turn the reply into unsaved proposals and record the duration
5. on any failure after step 2, store an error diagnostic and raise
   :class:`GenerationFailedError`
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
import traceback
from datetime import datetime, timezone
from typing import List, Optional

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.db.generation_store import GenerationStore
from app.db.records import FlashcardRecord, GenerationErrorRecord, GenerationRecord
from app.prompts import build_flashcard_prompt
from app.services.generation.fingerprint import compute_text_fingerprint
from app.services.llm_service.llm_schemas import (
    FLASHCARDS_RESPONSE_FORMAT,
    FlashcardItem,
    FlashcardsPayload,
)
from app.services.llm_service.openrouter import (
    InvalidResponseError,
    OpenRouterConfig,
    SleepFn,
    make_openrouter_config,
    send_message,
)
from app.services.llm_service.session import (
    add_message,
    create_session,
    create_system_message,
    with_response_format,
)
from app.services.performance_logger import PerformanceTimer, record_llm_time
from app.services.validation import validate_json

logger = logging.getLogger(__name__)

PROPOSAL_SOURCE = "ai-full"


class GenerationTimeoutError(Exception):
    """The AI phase did not finish before the generation deadline."""


class GenerationFailedError(Exception):
    """Single error shape raised for any failure after the record exists."""

    def __init__(self, message: str, generation_id: Optional[int] = None):
        super().__init__(message)
        self.generation_id = generation_id


class GenerationResult(BaseModel):
    generation: GenerationRecord
    flashcards: List[FlashcardRecord]


# ── AI call ───────────────────────────────────────────────


async def ai_generate_flashcards(
    input_text: str,
    *,
    config: OpenRouterConfig,
    model: str,
    http_client: Optional[httpx.AsyncClient] = None,
    sleep: SleepFn = asyncio.sleep,
) -> List[FlashcardItem]:
    """Run one structured chat exchange and return the proposed cards."""
    session = create_session(model)
    session = with_response_format(session, FLASHCARDS_RESPONSE_FORMAT)
    session = add_message(session, create_system_message("flashcard_generator"))

    prompt = build_flashcard_prompt(
        input_text,
        min_cards=settings.GENERATION_MIN_CARDS,
        max_cards=settings.GENERATION_MAX_CARDS,
        difficulty="intermediate",
    )
    session, completion = await send_message(
        session, prompt, "user", config=config, http_client=http_client, sleep=sleep
    )

    parsed = validate_json(FlashcardsPayload, completion.content)
    if not parsed.ok:
        raise InvalidResponseError(f"Invalid response format: {parsed.message}")

    # Strict mode should already enforce minItems, but some providers let it through
    if not parsed.value.flashcards:
        raise InvalidResponseError("Invalid response format: no flashcards returned")

    logger.info(
        "Model %s returned %d flashcards (history=%d)",
        completion.model or model, len(parsed.value.flashcards), len(session.messages),
    )
    return parsed.value.flashcards


def build_proposals(
    cards: List[FlashcardItem],
    generation_id: int,
    user_id: str,
) -> List[FlashcardRecord]:
    """Wrap cards as unsaved flashcards with ids -1, -2, ... in order."""
    now = datetime.now(timezone.utc)
    return [
        FlashcardRecord(
            id=-(index + 1),
            front=card.front,
            back=card.back,
            source=PROPOSAL_SOURCE,
            generation_id=generation_id,
            user_id=user_id,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        for index, card in enumerate(cards)
    ]


# ── Pipeline ──────────────────────────────────────────────


async def initiate_generation(
    store: GenerationStore,
    user_id: str,
    input_text: str,
    *,
    openrouter: Optional[OpenRouterConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    deadline_seconds: Optional[float] = None,
    sleep: SleepFn = asyncio.sleep,
) -> GenerationResult:
    """Generate flashcard proposals for *input_text* on behalf of *user_id*.

    Args:
        store: Persistence capability for generation records and errors.
        user_id: Owner of the generation.
        input_text: Source text to turn into flashcards.
        openrouter: Endpoint configuration (defaults to settings).
        http_client: Optional pre-built client, mainly for tests.
        deadline_seconds: Ceiling on the whole AI phase including retries.
        sleep: Back-off sleep function.

    Returns:
        The generation record (with its final duration) and the proposals.

    Raises:
        ChatConfigurationError: No OpenRouter API key; raised before any I/O.
        Exception: Whatever the store raises when the record cannot be created.
        GenerationFailedError: Any failure once the record exists.
    """
    if not user_id:
        raise ValueError("user_id is required")

    config = openrouter or make_openrouter_config()
    model = settings.OPENROUTER_MODEL
    deadline = deadline_seconds if deadline_seconds is not None else settings.GENERATION_TIMEOUT_SECONDS

    started = time.perf_counter()
    text_hash = compute_text_fingerprint(input_text)

    generation = await store.create_generation(
        user_id=user_id,
        model=model,
        source_text_length=len(input_text),
        source_text_hash=text_hash,
        generation_duration=0,
    )
    logger.info(
        "Created generation %s for user=%s (chars=%d)",
        generation.id, user_id, len(input_text),
    )

    try:
        with PerformanceTimer() as timer:
            try:
                cards = await asyncio.wait_for(
                    ai_generate_flashcards(
                        input_text,
                        config=config,
                        model=model,
                        http_client=http_client,
                        sleep=sleep,
                    ),
                    timeout=deadline,
                )
            except asyncio.TimeoutError as exc:
                raise GenerationTimeoutError(f"AI service timeout after {deadline:g} seconds") from exc
        record_llm_time(timer.elapsed)

        proposals = build_proposals(cards, generation.id, user_id)
        duration = math.ceil((time.perf_counter() - started) * 1000)

        try:
            await store.update_generation_duration(generation.id, duration)
        except Exception as exc:
            logger.warning("Failed to update generation duration for %s: %s", generation.id, exc)

        logger.info(
            "Generation %s finished in %dms with %d proposals",
            generation.id, duration, len(proposals),
        )
        return GenerationResult(
            generation=generation.model_copy(update={"generation_duration": duration}),
            flashcards=proposals,
        )

    except Exception as exc:
        message = str(exc) or type(exc).__name__
        await _log_generation_error(store, generation, exc, message)
        raise GenerationFailedError(f"Generation failed: {message}", generation.id) from exc


async def _log_generation_error(
    store: GenerationStore,
    generation: GenerationRecord,
    error: Exception,
    message: str,
) -> None:
    """Persist a diagnostic for a failed run. Never raises."""
    detail = (
        f"timestamp: {datetime.now(timezone.utc).isoformat()}\n"
        f"type: {type(error).__name__}\n"
        + "".join(traceback.format_exception(type(error), error, error.__traceback__))
    )
    logger.error("Generation %s failed: %s", generation.id, message)
    try:
        await store.create_generation_error(
            GenerationErrorRecord(
                generation_id=generation.id,
                error_message=message,
                error_detail=detail,
                model=generation.model,
            )
        )
    except Exception as log_exc:
        logger.error("Failed to log generation error for %s: %s", generation.id, log_exc)
