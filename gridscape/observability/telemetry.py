"""Per-attempt telemetry for the model cascade.

Events and counters are written to the project log; there is no separate
metrics backend.
"""

from __future__ import annotations

from typing import Protocol

from gridscape.core.context import ModelAttempt
from gridscape.util.debug_excerpt import debug_log_raw
from gridscape.util.logger import get_logger

_telemetry_logger = get_logger("telemetry")


def log_event(event: str, **payload: object) -> None:
    _telemetry_logger.info("event=%s payload=%s", event, payload)


def emit_counter(name: str, value: int = 1, labels: dict | None = None) -> None:
    _telemetry_logger.info("metric counter name=%s value=%s labels=%s", name, value, labels or {})


class AttemptRecorder(Protocol):
    def record(self, attempt: ModelAttempt) -> None: ...


class LoggingAttemptRecorder:
    """Writes each attempt as a structured log event plus an outcome counter."""

    def record(self, attempt: ModelAttempt) -> None:
        outcome = attempt.outcome.value if attempt.outcome is not None else "cancelled"
        log_event(
            "cascade_attempt",
            model=attempt.model_id,
            outcome=outcome,
            elapsed_ms=attempt.elapsed_ms,
            detail=attempt.detail,
        )
        emit_counter("cascade_attempt_total", labels={"model": attempt.model_id, "outcome": outcome})
        if attempt.raw_content is not None:
            debug_log_raw("cascade_attempt", attempt.raw_content, model_id=attempt.model_id)
