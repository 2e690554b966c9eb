"""Response cleaning pipeline."""

from __future__ import annotations

from gridscape.core.context import CascadeContext
from gridscape.core.models import UpstreamReply
from gridscape.filters.base import BaseFilter
from gridscape.filters.fence_stripper import FenceStripper
from gridscape.filters.json_span import JsonSpanExtractor
from gridscape.filters.reasoning_stripper import ReasoningStripper
from gridscape.util.logger import logger


class Pipeline:
    def __init__(self, response_filters: list[BaseFilter]) -> None:
        self.response_filters = response_filters
        logger.debug("response filter running: %s", [plugin.name for plugin in self.response_filters])

    @property
    def filter_names(self) -> set[str]:
        return {plugin.name for plugin in self.response_filters}

    def run_response(self, reply: UpstreamReply, ctx: CascadeContext) -> UpstreamReply:
        current = reply
        for plugin in self.response_filters:
            if plugin.enabled(ctx):
                current = plugin.process_response(current, ctx)
                ctx.add_report(plugin.report())
        return current.model_copy(update={"content": current.content.strip()})


def build_cleaning_pipeline() -> Pipeline:
    # order matters: fences and reasoning blocks go before the brace scan
    return Pipeline(response_filters=[FenceStripper(), ReasoningStripper(), JsonSpanExtractor()])


def clean_content(text: str) -> str:
    """Run the default cleaning pipeline over a bare content string."""
    pipeline = build_cleaning_pipeline()
    ctx = CascadeContext(request_id="clean", operation="clean", enabled_filters=pipeline.filter_names)
    reply = UpstreamReply(model_id="-", content=text or "")
    return pipeline.run_response(reply, ctx).content
