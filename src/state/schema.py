"""PipelineState schema for the generation graphs.

The state that flows through the graph nodes is deliberately thin: every
node reads its inputs from the source store and persists its outputs there,
so a run can resume from whatever the store already holds. The state only
carries identifiers, routing data and an audit trail of the stages a run
executed or skipped.
"""

import operator
from typing import Annotated

from typing_extensions import TypedDict

from src.state.enums import ContentKind


class PipelineState(TypedDict, total=False):
    """
    State schema shared by the pipeline graph and the academic subgraph.

    Usage with LangGraph:
        ```python
        graph = StateGraph(PipelineState)
        ```
    """

    work_item_id: str
    content_kind: ContentKind

    # Stage audit trail (accumulated across nodes)
    completed_stages: Annotated[list[str], operator.add]
    skipped_stages: Annotated[list[str], operator.add]

    # Academic subgraph: chapters still pending after the last chapter node
    chapters_remaining: int


def create_initial_state(work_item_id: str, content_kind: ContentKind) -> PipelineState:
    """Create the initial state for one pipeline run."""
    return PipelineState(
        work_item_id=work_item_id,
        content_kind=content_kind,
        completed_stages=[],
        skipped_stages=[],
        chapters_remaining=0,
    )
