"""Tagged validation results.

Validators return either :class:`ValidationSuccess` or
:class:`ValidationFailure` instead of raising, so callers branch on ``ok``
rather than inspecting exception shapes.
"""

from __future__ import annotations

import json
from typing import Any, Generic, List, Literal, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)


class FieldError(BaseModel):
    field: str
    message: str


class ValidationSuccess(BaseModel, Generic[T]):
    ok: Literal[True] = True
    value: T


class ValidationFailure(BaseModel):
    ok: Literal[False] = False
    errors: List[FieldError]

    @property
    def message(self) -> str:
        return "; ".join(
            f"{e.field}: {e.message}" if e.field else e.message for e in self.errors
        )


ValidationResult = Union[ValidationSuccess[T], ValidationFailure]


def _message(err: dict) -> str:
    # Custom validators raise ValueError; report their text without the "Value error, " prefix
    ctx = err.get("ctx") or {}
    if err.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return err.get("msg", "Invalid value")


def _field_errors(exc: ValidationError) -> List[FieldError]:
    return [
        FieldError(
            field=".".join(str(part) for part in err.get("loc", ())),
            message=_message(err),
        )
        for err in exc.errors()
    ]


def validate_model(schema: Type[T], data: Any) -> ValidationResult:
    """Validate *data* against *schema*."""
    try:
        return ValidationSuccess[schema](value=schema.model_validate(data))
    except ValidationError as exc:
        return ValidationFailure(errors=_field_errors(exc))


def validate_json(schema: Type[T], text: str) -> ValidationResult:
    """Parse *text* as JSON, then validate against *schema*."""
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        return ValidationFailure(errors=[FieldError(field="", message=f"Invalid JSON: {exc}")])
    return validate_model(schema, data)
