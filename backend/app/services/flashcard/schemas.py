"""Request schemas for the generation and flashcard endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from app.core.config import settings
from app.db.records import FlashcardSource

AI_SOURCES = ("ai-full", "ai-edited")


class GenerationRequest(BaseModel):
    input_text: str

    @field_validator("input_text")
    @classmethod
    def _check_length(cls, v: str) -> str:
        if len(v) < settings.GENERATION_MIN_INPUT_CHARS:
            raise ValueError(
                f"Input text must be at least {settings.GENERATION_MIN_INPUT_CHARS} characters long"
            )
        if len(v) > settings.GENERATION_MAX_INPUT_CHARS:
            raise ValueError(
                f"Input text must not exceed {settings.GENERATION_MAX_INPUT_CHARS} characters"
            )
        return v


class FlashcardCreate(BaseModel):
    front: str = Field(min_length=1, max_length=200)
    back: str = Field(min_length=1, max_length=500)
    source: FlashcardSource
    generation_id: Optional[int] = Field(default=None, gt=0, validate_default=True)

    @field_validator("generation_id")
    @classmethod
    def _require_generation_for_ai(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        if info.data.get("source") in AI_SOURCES and v is None:
            raise ValueError("generation_id is required when source is ai-full or ai-edited")
        return v


class CreateFlashcardsRequest(BaseModel):
    flashcards: List[FlashcardCreate] = Field(min_length=1, max_length=30)


class ListFlashcardsQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    is_deleted: Optional[bool] = None
    search: Optional[str] = None


class DeleteFlashcardParams(BaseModel):
    id: int = Field(gt=0)
