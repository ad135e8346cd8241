"""In-text citation markers.

Generated chapters cite sources with bracketed markers of the form
``[Surname, year: page]``. One bracket may group several citations
separated by semicolons, e.g. ``[Kowalski, 2019: 15; Nowak et al., 2021]``.
"""

import re
from dataclasses import dataclass

BRACKET = re.compile(r"\[([^\[\]]{3,300})\]")
CITATION = re.compile(
    r"^\s*(?P<author>[^\W\d_][^,;\[\]]*?)\s*,\s*"
    r"(?P<year>\d{4}[a-z]?|b\.\s?d\.|n\.\s?d\.)"
    r"\s*(?::\s*(?P<page>[^;\]]+?))?\s*$",
    re.UNICODE,
)


@dataclass(frozen=True)
class CitationMarker:
    """One citation parsed from an in-text marker."""

    author: str
    year: str
    page: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity used for de-duplication (page is ignored)."""
        return (" ".join(self.author.lower().split()), self.year.lower())

    @property
    def surname(self) -> str:
        """First surname, used for alphabetical ordering."""
        return re.split(r"\s+(?:et\s+al\.?|i\s+in\.?|and|i|&)\s+|\s+et\s+al\.?$",
                        self.author.strip())[0]


def format_marker(marker: CitationMarker) -> str:
    """Render a marker back in its in-text form."""
    if marker.page:
        return f"[{marker.author}, {marker.year}: {marker.page}]"
    return f"[{marker.author}, {marker.year}]"


def extract_citation_markers(text: str) -> list[CitationMarker]:
    """
    Extract citation markers from text, in order of appearance.

    Brackets that do not parse as citations (e.g. ``[1]`` or ``[sic]``) are
    ignored. Duplicates are kept.

    Args:
        text: Text or HTML to search.

    Returns:
        List of CitationMarker.
    """
    markers = []
    for bracket in BRACKET.finditer(text):
        for part in bracket.group(1).split(";"):
            match = CITATION.match(part)
            if match:
                markers.append(
                    CitationMarker(
                        author=" ".join(match.group("author").split()),
                        year=match.group("year"),
                        page=match.group("page"),
                    )
                )
    return markers
