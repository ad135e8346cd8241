"""Academic work subgraph.

toc -> chapter (loops until every chapter is written) -> introduction ->
conclusion -> bibliography -> assemble

The subgraph runs on its own PipelineState; the pipeline graph only receives
the stages it completed or skipped.
"""

import logging
from typing import Any, Callable

from langgraph.graph import END, START, StateGraph

from src.graphs.nodes import Node, advance_status
from src.graphs.routers import route_after_chapter
from src.memory.store import SourceStore
from src.nodes.academic import AcademicWorkGenerator
from src.state.enums import WorkItemStatus
from src.state.models import AcademicWork
from src.state.schema import PipelineState, create_initial_state

logger = logging.getLogger(__name__)

# Sub-stage -> whether the stored work already holds its output
SUBSTAGE_DONE: dict[str, Callable[[AcademicWork], bool]] = {
    "toc": lambda work: work.has_toc,
    "introduction": lambda work: work.introduction.is_completed,
    "conclusion": lambda work: work.conclusion.is_completed,
    "bibliography": lambda work: work.bibliography.is_completed,
    "assemble": lambda work: work.is_completed,
}


def _substage_node(
    store: SourceStore,
    generator: AcademicWorkGenerator,
    name: str,
    before: WorkItemStatus | None = None,
    after: WorkItemStatus | None = None,
) -> Node:
    run = {
        "toc": generator.generate_toc,
        "introduction": generator.generate_introduction,
        "conclusion": generator.generate_conclusion,
        "bibliography": generator.generate_bibliography,
        "assemble": generator.assemble,
    }[name]

    async def node(state: PipelineState) -> dict[str, Any]:
        item = await store.require_work_item(state["work_item_id"])
        work = await generator.load(item)
        if SUBSTAGE_DONE[name](work):
            logger.info(f"ACADEMIC: {name} already done for {item.id}, skipping")
            return {"skipped_stages": [name]}

        item = await advance_status(store, item, before)
        await run(item)
        if after is not None:
            item = await store.require_work_item(item.id)
            await advance_status(store, item, after)
        return {"completed_stages": [name]}

    node.__name__ = f"{name}_node"
    return node


def _chapter_node(store: SourceStore, generator: AcademicWorkGenerator) -> Node:
    async def chapter_node(state: PipelineState) -> dict[str, Any]:
        item = await store.require_work_item(state["work_item_id"])
        work = await generator.load(item)
        chapter = work.next_pending_chapter()
        if chapter is None:
            logger.info(f"ACADEMIC: all chapters already written for {item.id}, skipping")
            return {"skipped_stages": ["chapters"], "chapters_remaining": 0}

        await advance_status(store, item, WorkItemStatus.CONTENT_GENERATION)
        remaining = await generator.generate_chapter(item)
        return {
            "completed_stages": [f"chapter_{chapter.number}"],
            "chapters_remaining": remaining,
        }

    return chapter_node


def create_academic_subgraph(store: SourceStore, generator: AcademicWorkGenerator):
    """
    Create the compiled academic work subgraph.

    Args:
        store: Source store holding work items and outlines.
        generator: Academic sub-stage operations.

    Returns:
        Compiled StateGraph over PipelineState.
    """
    graph = StateGraph(PipelineState)

    graph.add_node(
        "toc",
        _substage_node(
            store,
            generator,
            "toc",
            before=WorkItemStatus.STRUCTURE_GENERATION,
            after=WorkItemStatus.STRUCTURE_READY,
        ),
    )
    graph.add_node("chapter", _chapter_node(store, generator))
    for name in ("introduction", "conclusion", "bibliography", "assemble"):
        graph.add_node(
            name,
            _substage_node(store, generator, name, before=WorkItemStatus.CONTENT_GENERATION),
        )

    graph.add_edge(START, "toc")
    graph.add_edge("toc", "chapter")
    graph.add_conditional_edges(
        "chapter",
        route_after_chapter,
        {"chapter": "chapter", "introduction": "introduction"},
    )
    graph.add_edge("introduction", "conclusion")
    graph.add_edge("conclusion", "bibliography")
    graph.add_edge("bibliography", "assemble")
    graph.add_edge("assemble", END)

    return graph.compile()


def create_academic_node(store: SourceStore, generator: AcademicWorkGenerator) -> Node:
    """Pipeline node that runs the academic subgraph and reports its stages."""
    subgraph = create_academic_subgraph(store, generator)

    async def academic_node(state: PipelineState) -> dict[str, Any]:
        result = await subgraph.ainvoke(
            create_initial_state(state["work_item_id"], state["content_kind"])
        )
        return {
            "completed_stages": result.get("completed_stages", []),
            "skipped_stages": result.get("skipped_stages", []),
        }

    return academic_node
