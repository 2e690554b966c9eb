"""Wire <-> internal model mapping."""

from __future__ import annotations

import copy
from typing import Any

from gridscape.config.settings import settings
from gridscape.core.errors import ValidationError
from gridscape.core.models import MODE_TO_OPERATION, ComposedPrompt, Operation, Register, RewriteRequest


def to_rewrite_request(payload: Any) -> RewriteRequest:
    """Map the inbound JSON body onto a RewriteRequest.

    Body: {text, mode, customPrompt?, task?, level?, contextMode?, context?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")

    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("text must be a non-empty string")
    if settings.max_text_length > 0 and len(text) > settings.max_text_length:
        raise ValidationError(f"text exceeds {settings.max_text_length} characters")

    task = str(payload.get("task") or "").strip().lower()
    if task == "define":
        operation = Operation.DEFINE
    elif task:
        raise ValidationError(f"unsupported task: {task}")
    else:
        mode = str(payload.get("mode") or "").strip().lower()
        if mode not in MODE_TO_OPERATION:
            raise ValidationError(f"unsupported mode: {mode or '<missing>'}")
        operation = MODE_TO_OPERATION[mode]

    raw_register = str(payload.get("contextMode") or Register.SPEAKING.value).strip().lower()
    try:
        register = Register(raw_register)
    except ValueError as exc:
        raise ValidationError(f"unsupported contextMode: {raw_register}") from exc

    raw_level = payload.get("level", 1)
    if raw_level is None:
        raw_level = 1
    if isinstance(raw_level, bool) or not isinstance(raw_level, (int, str)):
        raise ValidationError("level must be an integer")
    try:
        level = int(raw_level)
    except ValueError as exc:
        raise ValidationError("level must be an integer") from exc

    custom = payload.get("customPrompt")
    context = payload.get("context", payload.get("contextHint"))
    return RewriteRequest(
        text=text,
        operation=operation,
        register=register,
        level=level,
        custom_instruction=str(custom) if operation == Operation.CUSTOM and custom is not None else None,
        context_hint=str(context) if context not in (None, "") else None,
    )


def temperature_for(operation: Operation) -> float:
    if operation in (Operation.EXPAND, Operation.CUSTOM):
        return settings.creative_temperature
    return settings.rewrite_temperature


def build_chat_payload(model_id: str, prompt: ComposedPrompt, temperature: float) -> dict[str, Any]:
    return {
        "model": model_id,
        "messages": prompt.as_messages(),
        "temperature": temperature,
        "response_format": {"type": "json_object"},
    }


def _flatten_content(content: object) -> str | None:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part.get("text") if isinstance(part, dict) else part
            for part in content
        ]
        return "".join(part for part in parts if isinstance(part, str))
    return None


def extract_message_content(body: dict[str, Any] | str) -> str | None:
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    return _flatten_content(message.get("content"))


def render_envelope(body: dict[str, Any], cleaned_content: str) -> dict[str, Any]:
    """Copy of the upstream envelope with the message content replaced by the cleaned JSON string."""
    envelope = copy.deepcopy(body)
    envelope["choices"][0]["message"]["content"] = cleaned_content
    return envelope
