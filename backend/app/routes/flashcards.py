"""Saved flashcard routes."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.db.generation_store import GenerationStore, get_generation_store
from app.services.auth import get_current_user_id
from app.services.flashcard.schemas import (
    CreateFlashcardsRequest,
    DeleteFlashcardParams,
    ListFlashcardsQuery,
)
from app.services.flashcard.service import (
    FlashcardAlreadyDeletedError,
    FlashcardNotFoundError,
    GenerationNotFoundError,
    create_flashcards,
    delete_flashcard,
    list_flashcards,
)
from app.services.validation import validate_model
from .utils import error_response, read_json_body, validation_error_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/flashcards", status_code=201)
async def save_flashcards(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    store: GenerationStore = Depends(get_generation_store),
):
    ok, body = await read_json_body(request)
    if not ok:
        return error_response("Invalid JSON in request body", status_code=400)

    parsed = validate_model(CreateFlashcardsRequest, body)
    if not parsed.ok:
        return validation_error_response(parsed.errors)

    try:
        created = await create_flashcards(store, user_id, parsed.value.flashcards)
    except GenerationNotFoundError as e:
        return error_response(str(e), status_code=400)
    except Exception as e:
        logger.exception("Failed to save flashcards for user=%s", user_id)
        return error_response(f"Failed to create flashcards: {e}")

    return JSONResponse(
        status_code=201,
        content={
            "message": "Flashcards saved successfully",
            "flashcards": [c.model_dump(mode="json") for c in created],
        },
    )


@router.get("/flashcards")
async def get_flashcards(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    store: GenerationStore = Depends(get_generation_store),
):
    # Empty query values mean "not set"
    params = {k: v for k, v in request.query_params.items() if v != ""}
    parsed = validate_model(ListFlashcardsQuery, params)
    if not parsed.ok:
        return validation_error_response(parsed.errors)

    query = parsed.value
    try:
        page = await list_flashcards(
            store,
            user_id,
            page=query.page,
            limit=query.limit,
            is_deleted=query.is_deleted,
            search=query.search,
        )
    except Exception as e:
        logger.exception("Failed to list flashcards for user=%s", user_id)
        return error_response(f"Failed to fetch flashcards: {e}")

    return {
        "flashcards": [c.model_dump(mode="json") for c in page.flashcards],
        "pagination": {"total": page.total, "page": page.page, "limit": page.limit},
    }


@router.delete("/flashcards/{flashcard_id}")
async def remove_flashcard(
    flashcard_id: str,
    user_id: str = Depends(get_current_user_id),
    store: GenerationStore = Depends(get_generation_store),
):
    parsed = validate_model(DeleteFlashcardParams, {"id": flashcard_id})
    if not parsed.ok:
        return validation_error_response(parsed.errors, message="Invalid ID parameter")

    try:
        await delete_flashcard(store, user_id, parsed.value.id)
    except FlashcardNotFoundError as e:
        return error_response(str(e), status_code=404)
    except FlashcardAlreadyDeletedError as e:
        return error_response(str(e), status_code=400)
    except Exception as e:
        logger.exception("Failed to delete flashcard id=%s for user=%s", flashcard_id, user_id)
        return error_response(f"Failed to delete flashcard: {e}")

    return {"message": "Flashcard deleted successfully"}
