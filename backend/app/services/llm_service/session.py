"""Chat session helpers.

A :class:`ChatSession` is an immutable value. Every helper here returns a
new session instead of mutating the one it was given, so a session can be
threaded explicitly through :func:`app.services.llm_service.openrouter.send_message`.

Usage::

    session = create_session()
    session = with_response_format(session, FLASHCARDS_RESPONSE_FORMAT)
    session = add_message(session, create_system_message("flashcard_generator"))
    session, completion = await send_message(session, prompt, "user", config=config)
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from app.core.config import settings
from app.prompts import get_system_prompt
from app.services.llm_service.llm_schemas import (
    ChatMessage,
    ChatSession,
    MessageRole,
    ModelConfig,
    ResponseFormat,
)


class ChatConfigurationError(ValueError):
    """Raised for invalid client configuration or input, before any network I/O."""


def create_session(model_name: Optional[str] = None, **parameters: Any) -> ChatSession:
    """Return an empty session with default model settings."""
    base = ModelConfig(
        model_name=model_name or settings.OPENROUTER_MODEL,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
    )
    session = ChatSession(model_settings=base)
    if parameters:
        session = configure_model(session, **parameters)
    return session


def format_message(content: str, role: MessageRole) -> ChatMessage:
    return ChatMessage(role=role, content=content.strip())


def add_message(session: ChatSession, message: ChatMessage) -> ChatSession:
    return session.model_copy(update={"messages": session.messages + (message,)})


def with_response_format(
    session: ChatSession,
    response_format: Union[ResponseFormat, Mapping[str, Any]],
) -> ChatSession:
    """Attach a JSON-schema response contract, replacing any previous one.

    Raises:
        ChatConfigurationError: If the descriptor is not a ``json_schema``
            format with a name and an object schema.
    """
    if isinstance(response_format, ResponseFormat):
        fmt = response_format
    else:
        if not isinstance(response_format, Mapping) or response_format.get("type") != "json_schema":
            raise ChatConfigurationError('Response format type must be "json_schema"')
        spec = response_format.get("json_schema")
        if not isinstance(spec, Mapping) or not spec.get("name") or not spec.get("schema"):
            raise ChatConfigurationError("Response format must include json_schema with name and schema")
        try:
            fmt = ResponseFormat.model_validate(response_format)
        except ValidationError as exc:
            raise ChatConfigurationError(f"Invalid response format: {exc}") from exc

    if fmt.json_schema.schema_.get("type") != "object":
        raise ChatConfigurationError("Response format schema must describe a JSON object")

    return session.model_copy(update={"response_format": fmt})


def configure_model(
    session: ChatSession,
    model_name: Optional[str] = None,
    **parameters: Any,
) -> ChatSession:
    """Merge a partial model update into the session; unset fields are kept."""
    unknown = set(parameters) - (set(ModelConfig.model_fields) - {"model_name"})
    if unknown:
        raise ChatConfigurationError(f"Unknown model parameters: {sorted(unknown)}")

    update = {k: v for k, v in parameters.items() if v is not None}
    if model_name:
        update["model_name"] = model_name
    if not update:
        return session

    merged = ModelConfig.model_validate({**session.model_settings.model_dump(), **update})
    return session.model_copy(update={"model_settings": merged})


def create_system_message(
    template: str,
    variables: Optional[Mapping[str, str]] = None,
) -> ChatMessage:
    """Build a system message from a named template or a literal string."""
    return format_message(get_system_prompt(template, variables), "system")


def history(session: ChatSession) -> List[ChatMessage]:
    """Snapshot of the message history in insertion order."""
    return list(session.messages)


def clear_session(session: ChatSession) -> ChatSession:
    return session.model_copy(update={"messages": ()})


def reset_session(session: ChatSession) -> ChatSession:
    """Clear history and drop the configured response format."""
    return session.model_copy(update={"messages": (), "response_format": None})
