"""Typed records exchanged with the generation store."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

FlashcardSource = Literal["manual", "ai-full", "ai-edited"]


class GenerationRecord(BaseModel):
    """One run of the generation pipeline."""

    id: int
    user_id: str
    model: str
    source_text_length: int
    source_text_hash: str
    generation_duration: int = 0  # milliseconds
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GenerationErrorRecord(BaseModel):
    generation_id: int
    error_message: str
    error_detail: Optional[str] = None
    model: str


class FlashcardRecord(BaseModel):
    """Flashcard row. Proposals use negative ids and are never stored as-is."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    front: str
    back: str
    source: FlashcardSource
    generation_id: Optional[int] = None
    user_id: str
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime


class NewFlashcard(BaseModel):
    front: str
    back: str
    source: FlashcardSource
    generation_id: Optional[int] = None


class FlashcardPage(BaseModel):
    flashcards: List[FlashcardRecord]
    total: int
    page: int
    limit: int
