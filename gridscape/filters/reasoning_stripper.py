"""Remove paired <think>...</think> style blocks some models emit before the answer."""

from __future__ import annotations

import re

from gridscape.core.context import CascadeContext
from gridscape.core.models import UpstreamReply
from gridscape.filters.base import BaseFilter

_REASONING_TAGS = ("think", "thinking", "reasoning")
_REASONING_RE = re.compile(
    r"<(?P<tag>" + "|".join(_REASONING_TAGS) + r")\b[^>]*>.*?</(?P=tag)\s*>",
    re.IGNORECASE | re.DOTALL,
)


class ReasoningStripper(BaseFilter):
    name = "reasoning_stripper"

    def process_response(self, reply: UpstreamReply, ctx: CascadeContext) -> UpstreamReply:
        stripped, count = _REASONING_RE.subn("", reply.content)
        self._report = {"filter": self.name, "hit": count > 0, "blocks": count}
        if not count:
            return reply
        return reply.model_copy(update={"content": stripped})
