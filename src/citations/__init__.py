"""Citation extraction and reference lists."""

from src.citations.formatter import (
    CitationMarker,
    extract_citation_markers,
    format_marker,
)
from src.citations.manager import CitationManager, CitationUsage
from src.citations.reference_list import ReferenceListGenerator

__all__ = [
    "CitationMarker",
    "extract_citation_markers",
    "format_marker",
    "CitationManager",
    "CitationUsage",
    "ReferenceListGenerator",
]
