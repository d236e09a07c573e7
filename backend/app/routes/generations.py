"""Flashcard generation route."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.db.generation_store import GenerationStore, get_generation_store
from app.services.auth import get_current_user_id
from app.services.flashcard.schemas import GenerationRequest
from app.services.generation.service import GenerationFailedError, initiate_generation
from app.services.llm_service.session import ChatConfigurationError
from app.services.validation import validate_model
from .utils import error_response, read_json_body, validation_error_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generations", status_code=201)
async def create_generation(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    store: GenerationStore = Depends(get_generation_store),
):
    """Generate flashcard proposals from the submitted text.

    Proposals are returned with negative ids and are not saved; the client
    posts the accepted ones to ``/flashcards``.
    """
    ok, body = await read_json_body(request)
    if not ok:
        return error_response("Invalid JSON in request body", status_code=400)

    parsed = validate_model(GenerationRequest, body)
    if not parsed.ok:
        return validation_error_response(parsed.errors)

    try:
        result = await initiate_generation(store, user_id, parsed.value.input_text)
    except ChatConfigurationError as e:
        logger.error("Generation rejected for user=%s: %s", user_id, e)
        return error_response("OpenRouter API key not configured")
    except GenerationFailedError as e:
        return error_response(str(e))
    except Exception as e:
        logger.exception("Generation could not be started for user=%s", user_id)
        return error_response(str(e) or "Internal server error")

    return JSONResponse(
        status_code=201,
        content={
            "message": "Generation initiated",
            **result.model_dump(mode="json"),
        },
    )
