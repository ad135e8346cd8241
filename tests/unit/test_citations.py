"""Tests for citation extraction and reference lists."""

from src.citations import (
    CitationManager,
    CitationMarker,
    ReferenceListGenerator,
    extract_citation_markers,
    format_marker,
)
from src.writers.bibliography import parse_entries


class TestExtractCitationMarkers:
    """Tests for parsing in-text markers."""

    def test_single_marker_with_page(self):
        [marker] = extract_citation_markers("As shown [Kowalski, 2019: 45].")
        assert marker == CitationMarker(author="Kowalski", year="2019", page="45")

    def test_grouped_markers(self):
        markers = extract_citation_markers("Text [Kowalski, 2019: 45; Nowak et al., 2021].")
        assert [(m.author, m.year, m.page) for m in markers] == [
            ("Kowalski", "2019", "45"),
            ("Nowak et al.", "2021", None),
        ]

    def test_non_citation_brackets_ignored(self):
        assert extract_citation_markers("See [1] and [sic] and [note without year].") == []

    def test_polish_names_and_no_date(self):
        [marker] = extract_citation_markers("[Żółkiewski, b.d.]")
        assert marker.author == "Żółkiewski"
        assert marker.year == "b.d."

    def test_surname_for_multiple_authors(self):
        assert CitationMarker("Nowak i Kowalski", "2020").surname == "Nowak"
        assert CitationMarker("Smith et al.", "2020").surname == "Smith"

    def test_format_marker(self):
        assert format_marker(CitationMarker("Nowak", "2021", "12")) == "[Nowak, 2021: 12]"
        assert format_marker(CitationMarker("Nowak", "2021")) == "[Nowak, 2021]"


class TestCitationManager:
    """Tests for collecting citations across sections."""

    def test_unique_by_author_and_year(self):
        manager = CitationManager()
        manager.extract_and_record_citations("[Kowalski, 2019: 3]\n[Nowak, 2021]", "introduction")
        manager.extract_and_record_citations("[Kowalski, 2019: 45; kowalski, 2019: 50]", "chapter_1")

        unique = manager.unique_citations()

        assert manager.get_citation_count() == 4
        assert [(c.author, c.year) for c in unique] == [("Kowalski", "2019"), ("Nowak", "2021")]

    def test_usages_by_section(self):
        manager = CitationManager()
        manager.extract_and_record_citations("[Nowak, 2021]", "chapter_2")
        by_section = manager.get_citations_by_section()
        assert list(by_section) == ["chapter_2"]


class TestReferenceList:
    """Tests for the alphabetised reference list."""

    def test_sort_citations_by_surname(self):
        cited = [
            CitationMarker("Nowak", "2021"),
            CitationMarker("adamczyk", "2018"),
            CitationMarker("Kowalski", "2019"),
        ]
        ordered = ReferenceListGenerator.sort_citations(cited)
        assert [c.author for c in ordered] == ["adamczyk", "Kowalski", "Nowak"]

    def test_sort_entries_dedups_and_ignores_numbering(self):
        entries = [
            "Nowak, J. (2021). Energy markets.",
            "1. Adamczyk, B. (2018). Solar power.",
            "Nowak,  J. (2021). Energy markets.",
            "Kowalski, A. (2019). Renewable energy.",
        ]
        assert ReferenceListGenerator.sort_entries(entries) == [
            "1. Adamczyk, B. (2018). Solar power.",
            "Kowalski, A. (2019). Renewable energy.",
            "Nowak, J. (2021). Energy markets.",
        ]

    def test_to_html(self):
        content = ReferenceListGenerator(title="Bibliografia").to_html(["A & B (2020)."])
        assert content.startswith("<h2>Bibliografia</h2>")
        assert "<li>A &amp; B (2020).</li>" in content

    def test_format_citation(self):
        assert ReferenceListGenerator.format_citation(CitationMarker("Nowak", "2021")) == "Nowak (2021)."


class TestParseEntries:
    """Tests for reading entries from a bibliography answer."""

    def test_list_items(self):
        assert parse_entries("<ol><li>A.</li><li>B.</li></ol>") == ["A.", "B."]

    def test_plain_lines(self):
        assert parse_entries("1. First entry\n- Second entry\n\n") == ["First entry", "Second entry"]
