"""Pipeline graph assembly.

search -> scrape -> select_sources -> route(content_kind)
    generic:  outline -> content -> sync_order
    academic: academic subgraph  -> sync_order
"""

import logging
from dataclasses import dataclass

from langgraph.graph import END, START, StateGraph

from src.graphs.academic import create_academic_node
from src.graphs.nodes import stage_node
from src.graphs.routers import route_by_content_kind
from src.memory.store import SourceStore
from src.nodes.academic import AcademicWorkGenerator
from src.nodes.content import ContentGenerator
from src.nodes.delivery import DeliveryStage
from src.nodes.outline import OutlineGenerator
from src.nodes.scraping import ScrapeStage
from src.nodes.search import SearchStage
from src.nodes.source_selector import SourceSelector
from src.state.enums import WorkItemStatus
from src.state.schema import PipelineState

logger = logging.getLogger(__name__)


@dataclass
class PipelineStages:
    """The stage objects the pipeline graph is built from."""

    store: SourceStore
    search: SearchStage
    scrape: ScrapeStage
    select_sources: SourceSelector
    outline: OutlineGenerator
    content: ContentGenerator
    academic: AcademicWorkGenerator
    delivery: DeliveryStage


def create_pipeline_graph(stages: PipelineStages):
    """
    Create the compiled document generation graph.

    Args:
        stages: Stage objects sharing one source store.

    Returns:
        Compiled StateGraph over PipelineState.
    """
    store = stages.store
    graph = StateGraph(PipelineState)

    graph.add_node(
        "search", stage_node(store, stages.search, before=WorkItemStatus.SEARCHING)
    )
    graph.add_node(
        "scrape", stage_node(store, stages.scrape, before=WorkItemStatus.SCRAPING)
    )
    graph.add_node(
        "select_sources",
        stage_node(store, stages.select_sources, before=WorkItemStatus.SOURCE_SELECTION),
    )
    graph.add_node(
        "outline",
        stage_node(
            store,
            stages.outline,
            before=WorkItemStatus.STRUCTURE_GENERATION,
            after=WorkItemStatus.STRUCTURE_READY,
        ),
    )
    graph.add_node(
        "content",
        stage_node(store, stages.content, before=WorkItemStatus.CONTENT_GENERATION),
    )
    graph.add_node("academic", create_academic_node(store, stages.academic))
    graph.add_node("sync_order", stage_node(store, stages.delivery))

    graph.add_edge(START, "search")
    graph.add_edge("search", "scrape")
    graph.add_edge("scrape", "select_sources")
    graph.add_conditional_edges(
        "select_sources",
        route_by_content_kind,
        {"outline": "outline", "academic": "academic"},
    )
    graph.add_edge("outline", "content")
    graph.add_edge("content", "sync_order")
    graph.add_edge("academic", "sync_order")
    graph.add_edge("sync_order", END)

    logger.debug("Compiling pipeline graph")
    return graph.compile()
