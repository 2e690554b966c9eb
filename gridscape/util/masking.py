"""Credential masking for logs and error payloads."""

from __future__ import annotations

_VISIBLE_HEAD = 4
_VISIBLE_TAIL = 2


def mask_secret(value: str) -> str:
    """Keep a short prefix and suffix so keys stay recognisable in logs, hide the rest."""
    secret = (value or "").strip()
    if not secret:
        return ""
    if len(secret) <= _VISIBLE_HEAD + _VISIBLE_TAIL + 2:
        return "*" * len(secret)
    hidden = len(secret) - _VISIBLE_HEAD - _VISIBLE_TAIL
    return f"{secret[:_VISIBLE_HEAD]}{'*' * hidden}{secret[-_VISIBLE_TAIL:]}"


def scrub_secret(text: str, secret: str) -> str:
    """Replace every occurrence of *secret* in *text* with its masked form."""
    if not text or not secret or not secret.strip():
        return text
    return text.replace(secret, mask_secret(secret))
