"""Graph definitions and pipeline assembly.

This module provides:
- The document generation pipeline graph
- The academic work subgraph
- The pipeline orchestrator (single runs, batches, reopen)
"""

from src.graphs.academic import create_academic_node, create_academic_subgraph
from src.graphs.orchestrator import PipelineOrchestrator
from src.graphs.pipeline import PipelineStages, create_pipeline_graph
from src.graphs.routers import route_after_chapter, route_by_content_kind

__all__ = [
    "create_academic_node",
    "create_academic_subgraph",
    "PipelineOrchestrator",
    "PipelineStages",
    "create_pipeline_graph",
    "route_after_chapter",
    "route_by_content_kind",
]
