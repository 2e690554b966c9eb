"""Project error hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from gridscape.core.context import AttemptOutcome, ModelAttempt


class GridscapeError(Exception):
    """Base error."""


class ConfigurationError(GridscapeError):
    """Raised when a required server-side setting (the upstream credential) is missing."""


class ValidationError(GridscapeError):
    """Raised when an inbound rewrite request is malformed."""


class UpstreamAttemptError(GridscapeError):
    """A single cascade attempt failed; the cascade moves on to the next model."""

    def __init__(self, model_id: str, outcome: "AttemptOutcome", detail: str) -> None:
        super().__init__(f"Model {model_id} failed ({outcome.value}): {detail}")
        self.model_id = model_id
        self.outcome = outcome
        self.detail = detail


class TransientUpstreamError(UpstreamAttemptError):
    """HTTP non-2xx, network failure or timeout."""


class MalformedResponseError(UpstreamAttemptError):
    """Empty content, unparsable JSON or missing required fields."""


class ExhaustionError(GridscapeError):
    """Every configured model failed."""

    message = "All models failed"

    def __init__(
        self,
        last_error: UpstreamAttemptError | None,
        attempts: Sequence["ModelAttempt"] = (),
    ) -> None:
        super().__init__(self.message)
        self.last_error = last_error
        self.attempts = list(attempts)

    @property
    def details(self) -> str:
        if self.last_error is None:
            return "no models configured"
        return str(self.last_error)

    @property
    def last_outcome(self) -> "AttemptOutcome | None":
        return self.last_error.outcome if self.last_error is not None else None


class ClientDisconnectedError(GridscapeError):
    """The caller went away before the cascade finished; its result is discarded."""
