"""Model cascade executor.

Tries a fixed, ordered list of models against the gateway, one attempt at a
time, and returns the first structurally valid result. Every per-attempt
failure is recorded and swallowed; only exhaustion reaches the caller.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Protocol, Sequence

import httpx
from pydantic import BaseModel

from gridscape.adapters.openrouter.mapper import build_chat_payload, extract_message_content, render_envelope
from gridscape.adapters.openrouter.upstream import safe_error_detail
from gridscape.core.context import AttemptOutcome, CascadeContext, CascadeState, ModelAttempt
from gridscape.core.errors import ExhaustionError, MalformedResponseError, TransientUpstreamError, UpstreamAttemptError
from gridscape.core.models import ComposedPrompt, Operation, UpstreamReply
from gridscape.core.pipeline import Pipeline, build_cleaning_pipeline
from gridscape.core.validation import parse_and_validate, result_model_for
from gridscape.observability.telemetry import AttemptRecorder, LoggingAttemptRecorder
from gridscape.util.logger import logger


class ChatTransport(Protocol):
    async def post_chat(self, payload: dict[str, Any]) -> tuple[int, dict[str, Any] | str]: ...


@dataclass(slots=True)
class CascadeResult:
    model_id: str
    content: str
    payload: dict[str, Any]
    envelope: dict[str, Any]
    attempts: list[ModelAttempt] = field(default_factory=list)


class CascadeExecutor:
    def __init__(
        self,
        client: ChatTransport,
        models: Sequence[str],
        *,
        attempt_timeout: float,
        recorder: AttemptRecorder | None = None,
        pipeline: Pipeline | None = None,
    ) -> None:
        self._client = client
        self._models = tuple(models)
        self._attempt_timeout = float(attempt_timeout)
        self._recorder = recorder or LoggingAttemptRecorder()
        self._pipeline = pipeline or build_cleaning_pipeline()

    @property
    def models(self) -> tuple[str, ...]:
        return self._models

    async def execute(
        self,
        prompt: ComposedPrompt,
        operation: Operation,
        *,
        temperature: float,
        request_id: str | None = None,
    ) -> CascadeResult:
        ctx = CascadeContext(
            request_id=request_id or uuid.uuid4().hex[:12],
            operation=operation.value,
            enabled_filters=self._pipeline.filter_names,
        )
        result_model = result_model_for(operation)
        last_error: UpstreamAttemptError | None = None

        for model_id in self._models:
            attempt = ctx.begin_attempt(model_id)
            started = perf_counter()
            logger.info("cascade attempt request_id=%s index=%d model=%s", ctx.request_id, ctx.model_index, model_id)
            try:
                result = await self._attempt(
                    model_id,
                    build_chat_payload(model_id, prompt, temperature),
                    result_model,
                    ctx,
                    attempt,
                )
            except UpstreamAttemptError as exc:
                attempt.outcome = exc.outcome
                attempt.detail = exc.detail
                last_error = exc
                logger.warning(
                    "cascade fallback request_id=%s model=%s outcome=%s detail=%s",
                    ctx.request_id,
                    model_id,
                    exc.outcome.value,
                    exc.detail,
                )
                continue
            except asyncio.CancelledError:
                attempt.detail = "cancelled"
                logger.info("cascade cancelled request_id=%s model=%s", ctx.request_id, model_id)
                raise
            finally:
                attempt.elapsed_ms = int((perf_counter() - started) * 1000)
                self._recorder.record(attempt)

            ctx.state = CascadeState.SUCCEEDED
            logger.info(
                "cascade succeeded request_id=%s model=%s attempts=%d",
                ctx.request_id,
                model_id,
                len(ctx.attempts),
            )
            return result

        ctx.state = CascadeState.EXHAUSTED
        logger.error(
            "cascade exhausted request_id=%s attempts=%d last_error=%s",
            ctx.request_id,
            len(ctx.attempts),
            last_error,
        )
        raise ExhaustionError(last_error, ctx.attempts)

    async def _attempt(
        self,
        model_id: str,
        payload: dict[str, Any],
        result_model: type[BaseModel],
        ctx: CascadeContext,
        attempt: ModelAttempt,
    ) -> CascadeResult:
        try:
            # wait_for cancels the request on expiry, which closes its connection
            status_code, body = await asyncio.wait_for(self._client.post_chat(payload), timeout=self._attempt_timeout)
        except asyncio.TimeoutError as exc:
            raise TransientUpstreamError(
                model_id, AttemptOutcome.TIMEOUT, f"no response within {self._attempt_timeout:g}s"
            ) from exc
        except httpx.TimeoutException as exc:
            raise TransientUpstreamError(model_id, AttemptOutcome.TIMEOUT, str(exc) or "request timed out") from exc
        except httpx.HTTPError as exc:
            detail = (str(exc) or "").strip() or "connection_failed"
            raise TransientUpstreamError(model_id, AttemptOutcome.NETWORK_ERROR, detail) from exc

        if not 200 <= status_code < 300:
            raise TransientUpstreamError(
                model_id,
                AttemptOutcome.HTTP_ERROR,
                f"responded with {status_code}: {safe_error_detail(body)}",
            )

        content = extract_message_content(body)
        if not content or not content.strip():
            raise MalformedResponseError(model_id, AttemptOutcome.EMPTY_CONTENT, "returned empty content")
        attempt.raw_content = content

        reply = self._pipeline.run_response(UpstreamReply(model_id=model_id, content=content, raw=body), ctx)
        parsed = parse_and_validate(reply.content, result_model, model_id=model_id)
        attempt.outcome = AttemptOutcome.SUCCESS
        return CascadeResult(
            model_id=model_id,
            content=reply.content,
            payload=parsed,
            envelope=render_envelope(body, reply.content),
            attempts=ctx.attempts,
        )
