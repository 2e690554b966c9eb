"""
HTTP transport to the chat-completion gateway.
One client per cascade execution; nothing is pooled across requests.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import httpx

from gridscape.config.settings import settings
from gridscape.util.logger import logger
from gridscape.util.masking import scrub_secret

CHAT_COMPLETIONS_PATH = "/chat/completions"


def _decode_json_or_text(body: bytes) -> dict[str, Any] | str:
    text = body.decode("utf-8", errors="replace")
    if not text:
        return ""
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
        return text
    except json.JSONDecodeError:
        return text


def safe_error_detail(payload: dict[str, Any] | str, limit: int = 300) -> str:
    if isinstance(payload, str):
        return payload[:limit]
    error = payload.get("error")
    if isinstance(error, str):
        return error[:limit]
    if isinstance(error, Mapping) and isinstance(error.get("message"), str):
        return error["message"][:limit]
    return json.dumps(payload, ensure_ascii=False)[:limit]


def build_gateway_headers(api_key: str, *, referer: str = "", title: str = "") -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    if referer:
        headers["HTTP-Referer"] = referer
    if title:
        headers["X-Title"] = title
    return headers


class GatewayClient:
    """Async client for the upstream chat-completions endpoint.

    Use as an async context manager so the underlying connection is always
    released, including when an attempt is cancelled mid-flight.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        *,
        referer: str | None = None,
        title: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = (base_url or settings.upstream_base_url).rstrip("/")
        # httpx's own timeout is a backstop; the cascade enforces the attempt deadline
        resolved_timeout = float(timeout if timeout is not None else settings.attempt_timeout_seconds)
        headers = build_gateway_headers(
            api_key,
            referer=settings.upstream_referer if referer is None else referer,
            title=settings.upstream_title if title is None else title,
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(resolved_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def post_chat(self, payload: Mapping[str, Any]) -> tuple[int, dict[str, Any] | str]:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        logger.debug("post_chat start model=%s payload_bytes=%d", payload.get("model"), len(body))
        response = await self._client.post(CHAT_COMPLETIONS_PATH, content=body)
        logger.debug("post_chat done model=%s status=%s", payload.get("model"), response.status_code)
        if response.status_code >= 400:
            # some gateways echo the presented credential in auth errors
            scrubbed = scrub_secret(response.content.decode("utf-8", errors="replace"), self._api_key)
            return response.status_code, _decode_json_or_text(scrubbed.encode("utf-8"))
        return response.status_code, _decode_json_or_text(response.content)
