"""Slice model output to the span between the first '{' and the last '}'.

A substring heuristic, not a bracket matcher: braces inside prose outside
the intended object widen the span and make the result unparsable.
"""

from __future__ import annotations

from gridscape.core.context import CascadeContext
from gridscape.core.models import UpstreamReply
from gridscape.filters.base import BaseFilter


def slice_json_span(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text.strip()
    return text[start : end + 1]


class JsonSpanExtractor(BaseFilter):
    name = "json_span_extractor"

    def process_response(self, reply: UpstreamReply, ctx: CascadeContext) -> UpstreamReply:
        sliced = slice_json_span(reply.content)
        trimmed = sliced != reply.content.strip()
        self._report = {"filter": self.name, "hit": trimmed}
        if sliced == reply.content:
            return reply
        return reply.model_copy(update={"content": sliced})
