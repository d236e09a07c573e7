"""Saving and listing flashcards.

Proposals returned by the generation pipeline are never persisted by it;
the client sends back the ones the user accepted (possibly edited) and
they are stored here.
"""

import logging
from typing import List, Optional, Sequence

from app.db.generation_store import GenerationStore
from app.db.records import FlashcardPage, FlashcardRecord, NewFlashcard
from app.services.flashcard.schemas import AI_SOURCES, FlashcardCreate

logger = logging.getLogger(__name__)


class GenerationNotFoundError(LookupError):
    """A flashcard references a generation the user does not own."""

    def __init__(self, generation_id: int):
        super().__init__(
            f"Generation with id {generation_id} not found or does not belong to the user"
        )
        self.generation_id = generation_id


async def verify_generation_exists(store: GenerationStore, user_id: str, generation_id: int) -> None:
    generation = await store.get_generation(user_id, generation_id)
    if generation is None:
        raise GenerationNotFoundError(generation_id)


async def create_flashcards(
    store: GenerationStore,
    user_id: str,
    flashcards: Sequence[FlashcardCreate],
) -> List[FlashcardRecord]:
    """Persist accepted flashcards for *user_id*.

    Every distinct generation referenced by an AI-sourced card is checked
    for ownership before anything is written.

    Raises:
        GenerationNotFoundError: A referenced generation is missing or foreign.
    """
    generation_ids = {
        card.generation_id
        for card in flashcards
        if card.source in AI_SOURCES and card.generation_id is not None
    }
    for generation_id in sorted(generation_ids):
        await verify_generation_exists(store, user_id, generation_id)

    created = await store.create_flashcards(
        user_id,
        [
            NewFlashcard(
                front=card.front,
                back=card.back,
                source=card.source,
                generation_id=card.generation_id,
            )
            for card in flashcards
        ],
    )
    logger.info("Saved %d flashcards for user=%s", len(created), user_id)
    return created


async def list_flashcards(
    store: GenerationStore,
    user_id: str,
    *,
    page: int = 1,
    limit: int = 10,
    is_deleted: Optional[bool] = None,
    search: Optional[str] = None,
) -> FlashcardPage:
    return await store.list_flashcards(
        user_id, page=page, limit=limit, is_deleted=is_deleted, search=search
    )


class FlashcardNotFoundError(LookupError):
    def __init__(self, flashcard_id: int):
        super().__init__(f"Flashcard with id {flashcard_id} not found")
        self.flashcard_id = flashcard_id


class FlashcardAlreadyDeletedError(ValueError):
    def __init__(self, flashcard_id: int):
        super().__init__(f"Flashcard with id {flashcard_id} is already deleted")
        self.flashcard_id = flashcard_id


async def delete_flashcard(store: GenerationStore, user_id: str, flashcard_id: int) -> None:
    """Soft-delete one of the user's flashcards.

    Raises:
        FlashcardNotFoundError: The card is missing or belongs to someone else.
        FlashcardAlreadyDeletedError: The card was deleted before.
    """
    card = await store.get_flashcard(user_id, flashcard_id)
    if card is None:
        raise FlashcardNotFoundError(flashcard_id)
    if card.is_deleted:
        raise FlashcardAlreadyDeletedError(flashcard_id)

    await store.soft_delete_flashcard(user_id, flashcard_id)
    logger.info("Deleted flashcard id=%d for user=%s", flashcard_id, user_id)
