"""Strip the markdown code fence wrapping model output."""

from __future__ import annotations

import re

from gridscape.core.context import CascadeContext
from gridscape.core.models import UpstreamReply
from gridscape.filters.base import BaseFilter

# only the wrapping fence; backticks inside JSON string values are content
_LEADING_FENCE_RE = re.compile(r"^\s*```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")


class FenceStripper(BaseFilter):
    name = "fence_stripper"

    def process_response(self, reply: UpstreamReply, ctx: CascadeContext) -> UpstreamReply:
        stripped, leading = _LEADING_FENCE_RE.subn("", reply.content, count=1)
        stripped, trailing = _TRAILING_FENCE_RE.subn("", stripped, count=1)
        count = leading + trailing
        self._report = {"filter": self.name, "hit": count > 0, "fences": count}
        if not count:
            return reply
        return reply.model_copy(update={"content": stripped})
