"""
Shared route utilities used across route modules.

Centralises request body parsing and the JSON error shapes returned to
the client.
"""

from __future__ import annotations

from typing import Any, Iterable, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

from app.services.validation import FieldError


# ── Error Responses ───────────────────────────────────────────


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def validation_error_response(
    errors: Iterable[FieldError], message: str = "Validation failed"
) -> JSONResponse:
    """400 response listing every failing field."""
    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "details": [e.model_dump() for e in errors],
        },
    )


# ── Body Parsing ──────────────────────────────────────────────


async def read_json_body(request: Request) -> Tuple[bool, Any]:
    """Return ``(True, body)`` or ``(False, None)`` if the body is not JSON."""
    try:
        return True, await request.json()
    except ValueError:
        return False, None
