from __future__ import annotations
from typing import TypeVar

from flask import request
from pydantic import BaseModel, ValidationError as PydanticValidationError

from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)

def _pydantic_errors_safe(ve: PydanticValidationError) -> list[dict]:
    return [
        {"field": ".".join(str(p) for p in e["loc"]), "msg": e["msg"]}
        for e in ve.errors()
    ]

def parse_body(model: type[M]) -> M:
    """Validate the JSON body against a pydantic model or raise ValidationError (400)."""
    payload = request.get_json(silent=True) or {}
    try:
        return model.model_validate(payload)
    except PydanticValidationError as ve:
        raise ValidationError("Invalid input", detail=_pydantic_errors_safe(ve))
