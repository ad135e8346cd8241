"""Citation manager for tracking citations across a document."""

from dataclasses import dataclass

from src.citations.formatter import CitationMarker, extract_citation_markers


@dataclass
class CitationUsage:
    """Tracks where a citation is used."""

    marker: CitationMarker
    section: str
    location: str  # Line reference


class CitationManager:
    """
    Collect citation markers from the sections of a document.

    Tracks every usage and exposes the de-duplicated set of cited works
    in order of first appearance.
    """

    def __init__(self):
        self._usages: list[CitationUsage] = []

    def extract_and_record_citations(
        self,
        text: str,
        section: str,
    ) -> list[CitationMarker]:
        """
        Extract citations from text and record usages.

        Args:
            text: Text to search.
            section: Section name for recording.

        Returns:
            List of markers found, in order.
        """
        found = []
        for line_num, line in enumerate(text.split("\n"), 1):
            for marker in extract_citation_markers(line):
                self._usages.append(
                    CitationUsage(marker=marker, section=section, location=f"line {line_num}")
                )
                found.append(marker)
        return found

    def unique_citations(self) -> list[CitationMarker]:
        """Cited works without duplicates (same author and year)."""
        seen: set[tuple[str, str]] = set()
        unique = []
        for usage in self._usages:
            if usage.marker.key not in seen:
                seen.add(usage.marker.key)
                unique.append(usage.marker)
        return unique

    def get_citation_count(self) -> int:
        """Total citation usages."""
        return len(self._usages)

    def get_citations_by_section(self) -> dict[str, list[CitationMarker]]:
        by_section: dict[str, list[CitationMarker]] = {}
        for usage in self._usages:
            by_section.setdefault(usage.section, []).append(usage.marker)
        return by_section
