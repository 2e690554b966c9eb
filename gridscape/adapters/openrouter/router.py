"""Rewrite endpoint: compose the prompt, run the model cascade, return the cleaned envelope."""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, Awaitable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from gridscape.adapters.openrouter.mapper import temperature_for, to_rewrite_request
from gridscape.adapters.openrouter.upstream import GatewayClient
from gridscape.config.settings import parse_model_cascade, settings
from gridscape.core.cascade import CascadeExecutor, CascadeResult
from gridscape.core.composer import compose
from gridscape.core.errors import ClientDisconnectedError, ConfigurationError, ExhaustionError, ValidationError
from gridscape.core.models import ComposedPrompt, RewriteRequest
from gridscape.util.logger import logger
from gridscape.util.masking import mask_secret, scrub_secret

router = APIRouter()

EXHAUSTED_STATUS_CODE = 502
# closed-by-client, never seen by the caller
CLIENT_CLOSED_STATUS_CODE = 499
_DISCONNECT_POLL_SECONDS = 0.25


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _require_api_key() -> str:
    api_key = (settings.openrouter_api_key or "").strip()
    if not api_key:
        raise ConfigurationError("Server API Key missing")
    return api_key


async def _read_json_body(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError("request body must be valid JSON") from exc


async def _execute_cascade(
    api_key: str,
    rewrite: RewriteRequest,
    prompt: ComposedPrompt,
    request_id: str,
) -> CascadeResult:
    models = parse_model_cascade(settings.model_cascade)
    async with GatewayClient(api_key) as client:
        executor = CascadeExecutor(client, models, attempt_timeout=settings.attempt_timeout_seconds)
        return await executor.execute(
            prompt,
            rewrite.operation,
            temperature=temperature_for(rewrite.operation),
            request_id=request_id,
        )


async def _run_until_disconnect(request: Request, work: Awaitable[CascadeResult]) -> CascadeResult:
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=_DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnectedError("client disconnected before the cascade finished")
    finally:
        if not task.done():
            task.cancel()


@router.post("/upgrade")
async def upgrade(request: Request):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    api_key = ""
    try:
        api_key = _require_api_key()
        payload = await _read_json_body(request)
        rewrite = to_rewrite_request(payload)
        prompt = compose(rewrite)
        logger.info(
            "upgrade start request_id=%s operation=%s register=%s level=%s key=%s",
            request_id,
            rewrite.operation.value,
            rewrite.register.value,
            rewrite.level,
            mask_secret(api_key),
        )
        result = await _run_until_disconnect(request, _execute_cascade(api_key, rewrite, prompt, request_id))
    except ConfigurationError as exc:
        logger.error("upgrade rejected request_id=%s reason=%s", request_id, exc)
        return _error_response(500, str(exc))
    except ValidationError as exc:
        logger.warning("upgrade invalid request_id=%s reason=%s", request_id, exc)
        return _error_response(400, str(exc))
    except ExhaustionError as exc:
        return _error_response(EXHAUSTED_STATUS_CODE, exc.message, scrub_secret(exc.details, api_key))
    except ClientDisconnectedError:
        logger.info("upgrade abandoned request_id=%s", request_id)
        return _error_response(CLIENT_CLOSED_STATUS_CODE, "client disconnected")
    except Exception as exc:
        logger.exception("upgrade failed request_id=%s", request_id)
        return _error_response(500, scrub_secret(str(exc), api_key) or exc.__class__.__name__)

    logger.info("upgrade done request_id=%s model=%s", request_id, result.model_id)
    return JSONResponse(status_code=200, content=result.envelope)
