"""Prompt composer: RewriteRequest -> (system instructions, user message).

Pure and deterministic. The only input besides the request is the style
ladder, which is a fixed table for a given override file.
"""

from __future__ import annotations

from typing import Any, Mapping

from gridscape.config.style_ladder import MIN_LEVEL, clamp_level, load_style_ladder
from gridscape.core.errors import ValidationError
from gridscape.core.models import ComposedPrompt, Operation, Register, RewriteRequest


DEFAULT_REGISTER = Register.SPEAKING
DEFAULT_LEVEL = MIN_LEVEL

_LADDER_OPERATIONS = (Operation.ELEVATE, Operation.GROUND, Operation.EXPAND)


def _format_fields(descriptions: Mapping[str, str], names: tuple[str, ...]) -> str:
    return ", ".join(f"'{name}' ({descriptions.get(name, name)})" for name in names)


def define_fields(register: Register) -> tuple[str, ...]:
    if register == Register.SPEAKING:
        return ("definition", "nuance", "transcription")
    return ("definition", "nuance")


def validate_request(request: RewriteRequest) -> None:
    if not isinstance(request.text, str) or not request.text.strip():
        raise ValidationError("text must be a non-empty string")
    if not isinstance(request.operation, Operation):
        raise ValidationError(f"unsupported operation: {request.operation!r}")


def _level_block(levels: Mapping[Any, str], level: int) -> str | None:
    return levels.get(level) or levels.get(str(level))


def select_instruction_block(
    ladder: Mapping[str, Any],
    operation: Operation,
    register: Register,
    level: int,
) -> str:
    """Look up the (operation, register, level) block, falling back to (SPEAKING, 1)."""
    table = ladder["operations"][operation.value]
    by_register = table.get(register.value) or {}
    block = _level_block(by_register, clamp_level(level))
    if block:
        return block
    return _level_block(table[DEFAULT_REGISTER.value], DEFAULT_LEVEL)


def resolve_custom_instruction(ladder: Mapping[str, Any], instruction: str | None) -> str:
    raw = (instruction or "").strip()
    if not raw:
        return ladder["custom_fallback"]
    persona = ladder["personas"].get(raw.lower())
    return persona or raw


def _rewrite_system(ladder: Mapping[str, Any]) -> str:
    system = ladder["system"]
    fields = _format_fields(system["rewrite_fields"], ("text", "reason"))
    rules = [
        system["meaning"],
        system["reason"].format(max_words=ladder["reason_max_words"]),
        system["format"].format(fields=fields),
    ]
    numbered = "\n".join(f"{index}. {rule}" for index, rule in enumerate(rules, start=1))
    return f"{system['rewrite_role']}\n\nCRITICAL RULES:\n{numbered}"


def _define_system(ladder: Mapping[str, Any], register: Register) -> str:
    system = ladder["system"]
    fields = _format_fields(system["define_fields"], define_fields(register))
    return "\n".join(
        (
            system["define_role"],
            system["define_meaning"],
            system["format"].format(fields=fields),
        )
    )


def _rewrite_user(ladder: Mapping[str, Any], request: RewriteRequest, register: Register) -> str:
    if request.operation == Operation.CUSTOM:
        block = f"Instruction: {resolve_custom_instruction(ladder, request.custom_instruction)}"
    else:
        block = select_instruction_block(ladder, request.operation, register, request.level)
    parts = [f'Original Text: "{request.text}"']
    if request.context_hint:
        parts.append(f'Context from previous step: "{request.context_hint}"')
    parts.append(ladder["registers"][register.value])
    parts.append(block)
    parts.append(ladder["closing"])
    return "\n".join(parts)


def _define_user(request: RewriteRequest) -> str:
    if request.context_hint:
        return f'Define the word "{request.text}" as it is used in this specific context: "{request.context_hint}".'
    return f'Define the word "{request.text}".'


def compose(request: RewriteRequest, ladder: Mapping[str, Any] | None = None) -> ComposedPrompt:
    validate_request(request)
    tables = ladder if ladder is not None else load_style_ladder()
    register = request.register if isinstance(request.register, Register) else DEFAULT_REGISTER

    if request.operation == Operation.DEFINE:
        return ComposedPrompt(
            system_instructions=_define_system(tables, register),
            user_message=_define_user(request),
        )
    return ComposedPrompt(
        system_instructions=_rewrite_system(tables),
        user_message=_rewrite_user(tables, request, register),
    )
