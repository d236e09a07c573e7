"""
Store capability used by the generation and flashcard services.

Services depend on the :class:`GenerationStore` protocol only; the
Prisma-backed implementation below is what the API wires in.

Usage:
    from app.db.generation_store import get_generation_store

    store = get_generation_store()
    record = await store.create_generation(user_id=..., model=..., ...)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, Sequence

from app.db.records import (
    FlashcardPage,
    FlashcardRecord,
    GenerationErrorRecord,
    GenerationRecord,
    NewFlashcard,
)

logger = logging.getLogger(__name__)


class GenerationStore(Protocol):
    async def create_generation(
        self,
        *,
        user_id: str,
        model: str,
        source_text_length: int,
        source_text_hash: str,
        generation_duration: int = 0,
    ) -> GenerationRecord: ...

    async def update_generation_duration(self, generation_id: int, duration_ms: int) -> None: ...

    async def create_generation_error(self, error: GenerationErrorRecord) -> None: ...

    async def get_generation(self, user_id: str, generation_id: int) -> Optional[GenerationRecord]: ...

    async def create_flashcards(
        self, user_id: str, flashcards: Sequence[NewFlashcard]
    ) -> List[FlashcardRecord]: ...

    async def list_flashcards(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        is_deleted: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> FlashcardPage: ...

    async def get_flashcard(self, user_id: str, flashcard_id: int) -> Optional[FlashcardRecord]: ...

    async def soft_delete_flashcard(self, user_id: str, flashcard_id: int) -> None: ...


# ── Prisma implementation ─────────────────────────────────


def _generation_from_row(row: Any) -> GenerationRecord:
    return GenerationRecord(
        id=row.id,
        user_id=row.userId,
        model=row.model,
        source_text_length=row.sourceTextLength,
        source_text_hash=row.sourceTextHash,
        generation_duration=row.generationDuration,
        created_at=row.createdAt,
        updated_at=row.updatedAt,
    )


def _flashcard_from_row(row: Any) -> FlashcardRecord:
    return FlashcardRecord(
        id=row.id,
        front=row.front,
        back=row.back,
        source=row.source,
        generation_id=row.generationId,
        user_id=row.userId,
        is_deleted=row.isDeleted,
        created_at=row.createdAt,
        updated_at=row.updatedAt,
    )


class PrismaGenerationStore:
    """:class:`GenerationStore` over a connected Prisma client.

    Each call is its own statement; nothing spans a transaction.
    """

    def __init__(self, db: Any):
        self.db = db

    async def create_generation(
        self,
        *,
        user_id: str,
        model: str,
        source_text_length: int,
        source_text_hash: str,
        generation_duration: int = 0,
    ) -> GenerationRecord:
        row = await self.db.generation.create(
            data={
                "userId": user_id,
                "model": model,
                "sourceTextLength": source_text_length,
                "sourceTextHash": source_text_hash,
                "generationDuration": generation_duration,
            }
        )
        return _generation_from_row(row)

    async def update_generation_duration(self, generation_id: int, duration_ms: int) -> None:
        await self.db.generation.update(
            where={"id": generation_id},
            data={"generationDuration": duration_ms},
        )

    async def create_generation_error(self, error: GenerationErrorRecord) -> None:
        data = {
            "generationId": error.generation_id,
            "errorMessage": error.error_message,
            "model": error.model,
        }
        if error.error_detail is not None:
            data["errorDetail"] = error.error_detail
        await self.db.generationerror.create(data=data)

    async def get_generation(self, user_id: str, generation_id: int) -> Optional[GenerationRecord]:
        row = await self.db.generation.find_first(
            where={"id": generation_id, "userId": user_id}
        )
        return _generation_from_row(row) if row else None

    async def create_flashcards(
        self, user_id: str, flashcards: Sequence[NewFlashcard]
    ) -> List[FlashcardRecord]:
        # create_many does not return the inserted rows
        created = []
        for card in flashcards:
            row = await self.db.flashcard.create(
                data={
                    "front": card.front,
                    "back": card.back,
                    "source": card.source,
                    "generationId": card.generation_id,
                    "userId": user_id,
                }
            )
            created.append(_flashcard_from_row(row))
        return created

    async def list_flashcards(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        is_deleted: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> FlashcardPage:
        where: dict = {"userId": user_id}
        if is_deleted is not None:
            where["isDeleted"] = is_deleted
        if search and search.strip():
            where["front"] = {"contains": search.strip(), "mode": "insensitive"}

        rows = await self.db.flashcard.find_many(
            where=where,
            order={"createdAt": "desc"},
            skip=(page - 1) * limit,
            take=limit,
        )
        total = await self.db.flashcard.count(where=where)
        return FlashcardPage(
            flashcards=[_flashcard_from_row(r) for r in rows],
            total=total or 0,
            page=page,
            limit=limit,
        )

    async def get_flashcard(self, user_id: str, flashcard_id: int) -> Optional[FlashcardRecord]:
        row = await self.db.flashcard.find_first(
            where={"id": flashcard_id, "userId": user_id}
        )
        return _flashcard_from_row(row) if row else None

    async def soft_delete_flashcard(self, user_id: str, flashcard_id: int) -> None:
        await self.db.flashcard.update_many(
            where={"id": flashcard_id, "userId": user_id},
            data={"isDeleted": True, "updatedAt": datetime.now(timezone.utc)},
        )


def get_generation_store() -> GenerationStore:
    """FastAPI dependency returning the Prisma-backed store."""
    from app.db.prisma_client import prisma

    return PrismaGenerationStore(prisma)
