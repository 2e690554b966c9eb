"""Structural validation of cleaned model output."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from gridscape.core.context import AttemptOutcome
from gridscape.core.errors import MalformedResponseError
from gridscape.core.models import DefinitionResult, Operation, RewriteResult


def result_model_for(operation: Operation) -> type[BaseModel]:
    if operation == Operation.DEFINE:
        return DefinitionResult
    return RewriteResult


def _describe_schema_error(exc: SchemaError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", ()))
        message = str(error.get("msg", "invalid"))
        parts.append(f"{loc}: {message}" if loc else message)
    return "; ".join(parts)


def parse_and_validate(
    content: str,
    result_model: type[BaseModel],
    *,
    model_id: str,
) -> dict[str, Any]:
    """Parse cleaned content into ``result_model``. Raises MalformedResponseError."""
    if not content or not content.strip():
        raise MalformedResponseError(model_id, AttemptOutcome.EMPTY_CONTENT, "content empty after cleaning")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(model_id, AttemptOutcome.INVALID_JSON, f"json parse failed: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError(model_id, AttemptOutcome.INVALID_JSON, "top-level JSON value is not an object")
    try:
        result = result_model.model_validate(payload)
    except SchemaError as exc:
        raise MalformedResponseError(
            model_id,
            AttemptOutcome.MISSING_FIELDS,
            f"missing or empty fields: {_describe_schema_error(exc)}",
        ) from exc
    return result.model_dump(exclude_none=True)
