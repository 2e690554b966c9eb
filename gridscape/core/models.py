"""Request-scoped transport models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Operation(str, Enum):
    ELEVATE = "elevate"
    GROUND = "ground"
    EXPAND = "expand"
    CUSTOM = "custom"
    DEFINE = "define"


class Register(str, Enum):
    SPEAKING = "speaking"
    WRITING = "writing"


# inbound "mode" vocabulary used by the graph client
MODE_TO_OPERATION: dict[str, Operation] = {
    "sophisticate": Operation.ELEVATE,
    "simplify": Operation.GROUND,
    "emotional": Operation.EXPAND,
    "custom": Operation.CUSTOM,
}

@dataclass(frozen=True, slots=True)
class RewriteRequest:
    text: str
    operation: Operation
    register: Register = Register.SPEAKING
    level: int = 1
    custom_instruction: str | None = None
    context_hint: str | None = None


@dataclass(frozen=True, slots=True)
class ComposedPrompt:
    system_instructions: str
    user_message: str

    def as_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_instructions},
            {"role": "user", "content": self.user_message},
        ]


class UpstreamReply(BaseModel):
    """One chat-completion reply as it moves through the cleaning filters."""

    model_id: str
    content: str
    raw: dict = Field(default_factory=dict)


class RewriteResult(BaseModel):
    """Parsed rewrite payload. Extra keys from the model are kept."""

    model_config = ConfigDict(extra="allow")

    text: str = Field(min_length=1)
    reason: str = Field(min_length=1)

    @field_validator("text", "reason", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class DefinitionResult(BaseModel):
    """Parsed definition payload; either nuance or transcription must be present."""

    model_config = ConfigDict(extra="allow")

    definition: str = Field(min_length=1)
    nuance: str | None = None
    transcription: str | None = None

    @field_validator("definition", mode="before")
    @classmethod
    def strip_definition(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("nuance", "transcription", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @model_validator(mode="after")
    def require_nuance_or_transcription(self) -> "DefinitionResult":
        if self.nuance is None and self.transcription is None:
            raise ValueError("nuance|transcription missing or empty")
        return self
