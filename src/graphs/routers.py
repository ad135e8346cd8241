"""Routing functions for the pipeline graph and the academic subgraph.

Routing reads only the graph state; the content kind in the state is the
one stored on the work item when it was created.
"""

import logging
from typing import Literal

from src.state.enums import ContentKind
from src.state.schema import PipelineState

logger = logging.getLogger(__name__)


def route_by_content_kind(state: PipelineState) -> Literal["outline", "academic"]:
    """Route after source selection: academic works go to the subgraph."""
    kind = ContentKind(state["content_kind"])
    route = "academic" if kind.is_academic else "outline"
    logger.debug(f"Routing {state['work_item_id']} ({kind.value}) to {route}")
    return route


def route_after_chapter(state: PipelineState) -> Literal["chapter", "introduction"]:
    """Loop on the chapter node until no chapter is pending."""
    if state.get("chapters_remaining", 0) > 0:
        return "chapter"
    return "introduction"
