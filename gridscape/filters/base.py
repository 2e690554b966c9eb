"""Base filter contract."""

from __future__ import annotations

from abc import ABC

from gridscape.core.context import CascadeContext
from gridscape.core.models import UpstreamReply


class BaseFilter(ABC):
    name = "base"

    def __init__(self) -> None:
        self._report = {"filter": self.name, "hit": False}

    def enabled(self, ctx: CascadeContext) -> bool:
        return self.name in ctx.enabled_filters

    def process_response(self, reply: UpstreamReply, ctx: CascadeContext) -> UpstreamReply:
        return reply

    def report(self) -> dict:
        return dict(self._report)
