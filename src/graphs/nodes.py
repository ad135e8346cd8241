"""Graph node factories shared by the pipeline graph and the academic subgraph.

A node wraps one stage object. It loads the work item, skips the stage when
the store already holds its completed output, and otherwise advances the
coarse work item status and runs the stage.
"""

import logging
from typing import Any, Awaitable, Callable, Protocol

from src.memory.store import SourceStore
from src.state.enums import WorkItemStatus
from src.state.machine import transition
from src.state.models import WorkItem
from src.state.schema import PipelineState

logger = logging.getLogger(__name__)

Node = Callable[[PipelineState], Awaitable[dict[str, Any]]]


class Stage(Protocol):
    """A resumable pipeline stage."""

    name: str

    async def is_complete(self, item: WorkItem) -> bool: ...

    async def run(self, item: WorkItem) -> Any: ...


async def advance_status(
    store: SourceStore, item: WorkItem, status: WorkItemStatus | None
) -> WorkItem:
    """Move a work item forward and persist it; same-status moves are no-ops."""
    if status is None or item.status == status:
        return item
    transition(item, status)
    return await store.save_work_item(item)


def stage_node(
    store: SourceStore,
    stage: Stage,
    before: WorkItemStatus | None = None,
    after: WorkItemStatus | None = None,
) -> Node:
    """
    Build a graph node around a stage.

    Args:
        store: Source store holding the work item.
        stage: Stage to run.
        before: Work item status set before the stage runs.
        after: Work item status set after the stage completes.
    """

    async def node(state: PipelineState) -> dict[str, Any]:
        item = await store.require_work_item(state["work_item_id"])
        if await stage.is_complete(item):
            logger.info(f"{stage.name.upper()}: already done for {item.id}, skipping")
            return {"skipped_stages": [stage.name]}

        item = await advance_status(store, item, before)
        logger.info(f"{stage.name.upper()}: starting for {item.id}")
        await stage.run(item)
        if after is not None:
            item = await store.require_work_item(item.id)
            await advance_status(store, item, after)
        return {"completed_stages": [stage.name]}

    node.__name__ = f"{stage.name}_node"
    return node
