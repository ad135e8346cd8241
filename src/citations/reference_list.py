"""Reference list generation for academic works."""

import html
import re

from src.citations.formatter import CitationMarker

LEADING_NOISE = re.compile(r"^[\s\W\d_]+", re.UNICODE)


def _sort_text(entry: str) -> str:
    return LEADING_NOISE.sub("", entry).casefold()


class ReferenceListGenerator:
    """
    Build an alphabetised reference list.

    Entries are either cited works (``CitationMarker``) or already
    formatted reference strings.
    """

    def __init__(self, title: str = "Bibliography"):
        self.title = title

    @staticmethod
    def sort_citations(citations: list[CitationMarker]) -> list[CitationMarker]:
        """Sort cited works by surname, then year."""
        return sorted(citations, key=lambda c: (c.surname.casefold(), c.author.casefold(), c.year))

    @staticmethod
    def sort_entries(entries: list[str]) -> list[str]:
        """Sort formatted entries alphabetically, dropping duplicates."""
        unique: dict[str, str] = {}
        for entry in entries:
            normalized = " ".join(entry.split())
            if normalized and normalized.casefold() not in unique:
                unique[normalized.casefold()] = normalized
        return sorted(unique.values(), key=_sort_text)

    @staticmethod
    def format_citation(citation: CitationMarker) -> str:
        """Minimal entry for a cited work: ``Author (year).``"""
        return f"{citation.author} ({citation.year})."

    def to_html(self, entries: list[str]) -> str:
        """Render sorted entries as an HTML reference list."""
        items = "\n".join(f"<li>{html.escape(entry, quote=False)}</li>" for entry in entries)
        return f"<h2>{html.escape(self.title)}</h2>\n<ol>\n{items}\n</ol>"
