"""
Truncated excerpts of raw model output for DEBUG logs.
Only emits when the gridscape logger is at DEBUG; callers never pay for formatting otherwise.
"""

from __future__ import annotations

import logging

from gridscape.util.logger import logger

DEFAULT_EXCERPT_MAX_LEN = 300


def excerpt_for_debug(text: str, max_len: int = DEFAULT_EXCERPT_MAX_LEN) -> str:
    """Truncate *text* to a readable excerpt. The input is not modified."""
    if not text:
        return ""
    s = str(text).strip()
    if len(s) <= max_len:
        return s
    return f"{s[:max_len]} ... [truncated, total {len(s)} chars]"


def debug_log_raw(
    label: str,
    raw_text: str,
    *,
    model_id: str | None = None,
    max_len: int = DEFAULT_EXCERPT_MAX_LEN,
) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    excerpt = excerpt_for_debug(raw_text, max_len=max_len)
    logger.debug("%s raw_excerpt model=%s excerpt=%s", label, model_id or "-", excerpt)
