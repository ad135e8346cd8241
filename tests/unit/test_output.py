"""Tests for sizing and HTML helpers."""

import pytest

from src.output.html import (
    assemble_document,
    count_headings,
    extract_chapter_structure,
    extract_chapter_titles,
    html_to_text,
    list_items,
    parse_table_of_contents,
    simple_table_of_contents,
    split_h2_sections,
    strip_chapter_heading,
    text_length,
    to_html,
)
from src.output.sizing import (
    chapter_length_budget,
    content_max_tokens,
    format_sources_for_prompt,
    header_count,
    length_bounds,
    limit_sources,
    per_section_budget,
    within_target,
)
from src.state.enums import ScrapeStatus


TOC_HTML = """
<h2>CHAPTER 1: Theoretical foundations</h2>
<h3>1.1. Basic concepts</h3>
<p>Definitions.</p>
<h3>1.2. Review of research</h3>
<h2>CHAPTER 2: Energy market in Poland</h2>
<h3>2.1. Regulations</h3>
<h2>CHAPTER 3: Own research</h2>
<h3>3.1. Method</h3>
<h3>3.2. Results</h3>
"""


# =============================================================================
# Sizing
# =============================================================================


class TestHeaderCount:
    """Tests for the header count derived from the target length."""

    @pytest.mark.parametrize(
        "length, expected",
        [
            (1000, 3),      # clamped up
            (6000, 3),
            (7000, 4),      # 3.5 rounds up
            (8999, 4),
            (9000, 5),
            (20000, 10),
            (100000, 20),   # clamped down
        ],
    )
    def test_header_count(self, length, expected):
        assert header_count(length) == expected

    def test_per_section_budget(self):
        assert per_section_budget(10000, 5) == 2000
        assert per_section_budget(10000, 0) == 10000


class TestLengthTarget:
    """Tests for the +/-20% length tolerance."""

    def test_bounds(self):
        assert length_bounds(10000) == (8000, 12000)

    def test_within_target(self):
        assert within_target(8000, 10000)
        assert within_target(12000, 10000)
        assert not within_target(7999, 10000)
        assert not within_target(12001, 10000)

    def test_content_max_tokens(self):
        assert content_max_tokens(1000, cap=64000) == 1024
        assert content_max_tokens(10000, cap=64000) == 6500
        assert content_max_tokens(200000, cap=64000) == 64000

    def test_chapter_budget_leaves_room_for_frame(self):
        assert chapter_length_budget(40000, 4) == 9000


class TestLimitSources:
    """Tests for splitting the source budget."""

    def test_even_split_and_truncation(self, make_source):
        sources = [
            make_source("wi", "https://a.test", 0, text="a" * 100),
            make_source("wi", "https://b.test", 1, text="b" * 30),
        ]

        limited = limit_sources(sources, budget=100)

        assert [s.text_length for s in limited] == [50, 30]
        assert limited[0].truncated
        assert not limited[1].truncated
        assert limited[0].original_length == 100

    def test_empty(self):
        assert limit_sources([], budget=100) == []

    def test_used_source_summary(self, make_source):
        [limited] = limit_sources([make_source("wi", "https://a.test", text="x" * 500)], budget=1000)
        used = limited.to_used_source()
        assert used.url == "https://a.test"
        assert len(used.snippet) == 300

    def test_prompt_format(self, make_source):
        limited = limit_sources(
            [make_source("wi", "https://a.test"), make_source("wi", "https://b.test", 1)],
            budget=1000,
        )
        prompt = format_sources_for_prompt(limited)
        assert prompt.startswith("SOURCE 1 (https://a.test):")
        assert "SOURCE 2 (https://b.test):" in prompt

    def test_failed_source_has_no_text(self, make_source):
        source = make_source("wi", "https://a.test", status=ScrapeStatus.FAILED)
        assert source.text == ""


# =============================================================================
# HTML
# =============================================================================


class TestHtmlHelpers:
    """Tests for normalization and measurement."""

    def test_markdown_is_converted(self):
        result = to_html("## Heading\n\nSome **bold** text.")
        assert "<h2>Heading</h2>" in result
        assert "<strong>bold</strong>" in result

    def test_html_is_kept_and_fences_stripped(self):
        assert to_html("```html\n<h2>A</h2><p>B</p>\n```") == "<h2>A</h2><p>B</p>"

    def test_visible_text_length(self):
        assert html_to_text("<h2>Ab</h2><p>cd <b>ef</b></p>") == "Ab cd ef"
        assert text_length("<p>abc</p>") == 3

    def test_count_headings_and_list_items(self):
        assert count_headings("<h2>a</h2><h3>b</h3><h2>c</h2>") == 2
        assert list_items("<ol><li>One</li><li>Two <i>x</i></li></ol>") == ["One", "Two x"]

    def test_split_h2_sections(self):
        sections = split_h2_sections(
            "<p>intro</p><h2>First</h2><p>one</p><h2>Second &amp; last</h2><p>two</p>"
        )
        assert sections == [("First", "<p>one</p>"), ("Second & last", "<p>two</p>")]


class TestTableOfContents:
    """Tests for parsing and rendering the academic table of contents."""

    def test_parse(self):
        chapters = parse_table_of_contents(TOC_HTML)
        assert [c.number for c in chapters] == [1, 2, 3]
        assert chapters[0].title == "Theoretical foundations"
        assert chapters[0].subsections == ["1.1. Basic concepts", "1.2. Review of research"]
        assert chapters[2].subsections == ["3.1. Method", "3.2. Results"]

    def test_polish_headings(self):
        chapters = parse_table_of_contents("<h2>ROZDZIAŁ 1. Podstawy teoretyczne</h2>")
        assert chapters[0].title == "Podstawy teoretyczne"

    def test_simple_toc(self):
        text = simple_table_of_contents(parse_table_of_contents(TOC_HTML))
        assert text.splitlines()[:3] == [
            "CHAPTER 1: Theoretical foundations",
            "  1.1. Basic concepts",
            "  1.2. Review of research",
        ]
        assert "\n\nCHAPTER 2: Energy market in Poland" in text

    def test_extract_chapter_structure(self):
        structure = extract_chapter_structure(TOC_HTML, 2)
        assert structure.startswith("<h2>CHAPTER 2: Energy market in Poland</h2>")
        assert "2.1. Regulations" in structure
        assert "CHAPTER 3" not in structure
        assert extract_chapter_structure(TOC_HTML, 9) == ""


class TestAssembleDocument:
    """Tests for the final academic document."""

    def test_strip_chapter_heading(self):
        assert strip_chapter_heading("<h2>CHAPTER 1: X</h2><p>a</p>") == "<p>a</p>"
        assert strip_chapter_heading("<h2>Other</h2><p>a</p>") == "<h2>Other</h2><p>a</p>"

    def test_chapter_titles_round_trip(self):
        chapters = [
            (1, "Theory & practice", "<h2>CHAPTER 1: Theory &amp; practice</h2><p>a</p>"),
            (2, "Market", "<p>b</p>"),
            (3, "Own research", "<p>c</p>"),
        ]

        document = assemble_document(
            "CHAPTER 1: Theory & practice",
            "<h2>Introduction</h2>",
            chapters,
            "<h2>Conclusion</h2>",
            "<h2>Bibliography</h2><ol><li>A</li></ol>",
            toc_title="Spis treści",
        )

        assert extract_chapter_titles(document) == ["Theory & practice", "Market", "Own research"]
        assert document.count("CHAPTER 1: Theory") == 2  # TOC and heading
        assert "<h1>Spis treści</h1>" in document
        assert document.index("chapter-3") < document.index('class="conclusion"')
