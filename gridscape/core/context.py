"""Cascade runtime context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from time import time


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    EMPTY_CONTENT = "empty_content"
    INVALID_JSON = "invalid_json"
    MISSING_FIELDS = "missing_fields"


class CascadeState(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class ModelAttempt:
    model_id: str
    started_at: float
    outcome: AttemptOutcome | None = None
    raw_content: str | None = None
    detail: str = ""
    elapsed_ms: int = 0


@dataclass(slots=True)
class CascadeContext:
    request_id: str
    operation: str
    enabled_filters: set[str] = field(default_factory=set)
    state: CascadeState = CascadeState.PENDING
    model_index: int = -1
    attempts: list[ModelAttempt] = field(default_factory=list)
    report_items: list[dict] = field(default_factory=list)
    created_at: float = field(default_factory=time)

    def add_report(self, item: dict) -> None:
        self.report_items.append(item)

    def begin_attempt(self, model_id: str) -> ModelAttempt:
        self.state = CascadeState.ATTEMPTING
        self.model_index += 1
        attempt = ModelAttempt(model_id=model_id, started_at=time())
        self.attempts.append(attempt)
        return attempt
