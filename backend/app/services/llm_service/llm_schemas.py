"""Pydantic schemas for the chat-completions wire format and structured outputs."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

MessageRole = Literal["system", "user", "assistant"]


# ── Session ───────────────────────────────────────────────

class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str


class ModelConfig(BaseModel):
    """Model name plus generation parameters sent with every request."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_name: str = "openai/gpt-4o-mini"
    temperature: Optional[float] = 0.7
    max_tokens: Optional[int] = 2000
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None


class JsonSchemaSpec(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    strict: bool = True
    schema_: Dict[str, Any] = Field(alias="schema")


class ResponseFormat(BaseModel):
    """``response_format`` contract forcing a named JSON schema on the reply."""

    model_config = ConfigDict(frozen=True)

    type: Literal["json_schema"]
    json_schema: JsonSchemaSpec


class ChatSession(BaseModel):
    """Immutable conversation state: ordered history, model config, format."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    messages: Tuple[ChatMessage, ...] = ()
    model_settings: ModelConfig = Field(default_factory=ModelConfig)
    response_format: Optional[ResponseFormat] = None


# ── Wire format ───────────────────────────────────────────

class ChoiceMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = ""


class Choice(BaseModel):
    index: int = 0
    message: ChoiceMessage
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    """Validated chat-completions response envelope."""

    id: str = ""
    model: str = ""
    created: int = 0
    choices: List[Choice] = Field(min_length=1)
    usage: Optional[Usage] = None

    @property
    def content(self) -> str:
        return self.choices[0].message.content or ""


# ── Flashcards ────────────────────────────────────────────

class FlashcardItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    front: str
    back: str


class FlashcardsPayload(BaseModel):
    """Shape of the model's structured reply for flashcard generation."""

    flashcards: List[FlashcardItem]


FLASHCARDS_RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "flashcards_generation",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "flashcards": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "front": {
                                "type": "string",
                                "description": "The question or prompt on the front of the flashcard",
                            },
                            "back": {
                                "type": "string",
                                "description": "The answer or explanation on the back of the flashcard",
                            },
                        },
                        "required": ["front", "back"],
                        "additionalProperties": False,
                    },
                    "minItems": 1,
                    "maxItems": 30,
                    "description": "Array of flashcards generated from the input text",
                },
            },
            "required": ["flashcards"],
            "additionalProperties": False,
        },
    },
}
