"""Pipeline stages for the document generation graph."""

from src.nodes.intake import (
    build_work_item,
    classify_content_type,
    create_work_item,
    validate_order_item,
)
from src.nodes.query_formulator import QueryFormulator, clean_query, simplified_query
from src.nodes.search import SearchStage
from src.nodes.scraping import ScrapeStage
from src.nodes.source_selector import SourceSelector, apply_selection, parse_selection
from src.nodes.outline import OutlineGenerator
from src.nodes.content import ContentGenerator
from src.nodes.academic import AcademicWorkGenerator
from src.nodes.delivery import DeliveryStage

__all__ = [
    "build_work_item",
    "classify_content_type",
    "create_work_item",
    "validate_order_item",
    "QueryFormulator",
    "clean_query",
    "simplified_query",
    "SearchStage",
    "ScrapeStage",
    "SourceSelector",
    "apply_selection",
    "parse_selection",
    "OutlineGenerator",
    "ContentGenerator",
    "AcademicWorkGenerator",
    "DeliveryStage",
]
