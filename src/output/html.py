"""HTML helpers for generated documents.

Model answers are expected as HTML; answers that come back as Markdown are
converted. The helpers here parse chapter and section headings, derive the
plain-text table of contents and assemble the final academic document.
"""

import html
import re
from dataclasses import dataclass, field

import markdown
from bs4 import BeautifulSoup

MARKDOWN_HEADING = re.compile(r"^#+\s", re.MULTILINE)
CODE_FENCE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?|\n?\s*```\s*$")
H2_TAG = re.compile(r"<h2[^>]*>(.*?)</h2>", re.IGNORECASE | re.DOTALL)
TAG = re.compile(r"<[^>]+>")

CHAPTER_HEADING = re.compile(
    r"^\s*(?:chapter|rozdział|rozdzial)\s+(\d+)\s*[:.\-–]\s*(.+?)\s*$",
    re.IGNORECASE,
)
SUBSECTION_HEADING = re.compile(r"^\s*(\d+)\.(\d+)\.?\s+(.+?)\s*$")


@dataclass
class TocChapter:
    """A chapter parsed from the full table of contents."""

    number: int
    title: str
    subsections: list[str] = field(default_factory=list)


def strip_code_fences(text: str) -> str:
    return CODE_FENCE.sub("", text.strip()).strip()


def to_html(text: str) -> str:
    """Normalize a model answer to HTML, converting Markdown when detected."""
    text = strip_code_fences(text)
    if MARKDOWN_HEADING.search(text):
        return markdown.markdown(text, extensions=["tables"])
    return text


def html_to_text(content: str) -> str:
    """Visible text of an HTML fragment."""
    return BeautifulSoup(content, "html.parser").get_text(" ", strip=True)


def text_length(content: str) -> int:
    """Character count of the visible text of an HTML fragment."""
    return len(html_to_text(content))


def count_headings(content: str, level: str = "h2") -> int:
    return len(BeautifulSoup(content, "html.parser").find_all(level))


def list_items(content: str) -> list[str]:
    """Text of every <li> element."""
    soup = BeautifulSoup(content, "html.parser")
    return [li.get_text(" ", strip=True) for li in soup.find_all("li")]


def split_h2_sections(content: str) -> list[tuple[str, str]]:
    """Split HTML into (heading text, section HTML) pairs at <h2> boundaries.

    Text before the first <h2> is ignored.
    """
    matches = list(H2_TAG.finditer(content))
    sections = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(content)
        title = html.unescape(TAG.sub("", match.group(1))).strip()
        sections.append((title, content[match.end():end].strip()))
    return sections


# =============================================================================
# Academic table of contents
# =============================================================================


def parse_table_of_contents(structure: str) -> list[TocChapter]:
    """Parse chapter and subsection headings from the full HTML structure."""
    soup = BeautifulSoup(structure, "html.parser")
    chapters: list[TocChapter] = []
    for heading in soup.find_all(["h2", "h3"]):
        text = heading.get_text(" ", strip=True)
        if heading.name == "h2":
            match = CHAPTER_HEADING.match(text)
            if match:
                chapters.append(TocChapter(number=int(match.group(1)), title=match.group(2)))
        elif chapters:
            match = SUBSECTION_HEADING.match(text)
            if match:
                chapters[-1].subsections.append(
                    f"{match.group(1)}.{match.group(2)}. {match.group(3)}"
                )
    return chapters


def simple_table_of_contents(chapters: list[TocChapter]) -> str:
    """Plain-text table of contents: chapters with indented subsections."""
    blocks = []
    for chapter in chapters:
        lines = [f"CHAPTER {chapter.number}: {chapter.title}"]
        lines.extend(f"  {subsection}" for subsection in chapter.subsections)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def extract_chapter_structure(structure: str, number: int) -> str:
    """The slice of the full structure that belongs to one chapter."""
    matches = list(H2_TAG.finditer(structure))
    for index, match in enumerate(matches):
        heading = html.unescape(TAG.sub("", match.group(1)))
        found = CHAPTER_HEADING.match(heading)
        if found and int(found.group(1)) == number:
            end = matches[index + 1].start() if index + 1 < len(matches) else len(structure)
            return structure[match.start():end].strip()
    return ""


def chapter_heading(number: int, title: str) -> str:
    return f"<h2>CHAPTER {number}: {html.escape(title, quote=False)}</h2>"


def strip_chapter_heading(content: str) -> str:
    """Drop a leading chapter heading the model may have written itself."""
    match = re.match(r"\s*<h[12][^>]*>(.*?)</h[12]>\s*", content, re.IGNORECASE | re.DOTALL)
    if match and CHAPTER_HEADING.match(html.unescape(TAG.sub("", match.group(1)))):
        return content[match.end():]
    return content


def extract_chapter_titles(document: str) -> list[str]:
    """Chapter titles from the rendered chapter headings of a document."""
    soup = BeautifulSoup(document, "html.parser")
    titles = []
    for heading in soup.find_all("h2"):
        match = CHAPTER_HEADING.match(heading.get_text(" ", strip=True))
        if match:
            titles.append(match.group(2))
    return titles


def assemble_document(
    table_of_contents: str,
    introduction: str,
    chapters: list[tuple[int, str, str]],
    conclusion: str,
    bibliography: str,
    toc_title: str = "Table of Contents",
) -> str:
    """Concatenate the sections of an academic work into one document.

    Args:
        table_of_contents: Plain-text table of contents.
        introduction: Introduction HTML.
        chapters: (number, title, content HTML) per chapter.
        conclusion: Conclusion HTML.
        bibliography: Bibliography HTML.
        toc_title: Heading of the table of contents block.
    """
    parts = [
        '<div class="table-of-contents">'
        f"<h1>{html.escape(toc_title)}</h1>"
        f"<pre>{html.escape(table_of_contents)}</pre>"
        "</div>",
        f'<div class="introduction">\n{introduction}\n</div>',
    ]
    for number, title, content in chapters:
        parts.append(
            f'<div class="chapter chapter-{number}">\n'
            f"{chapter_heading(number, title)}\n"
            f"{strip_chapter_heading(content).strip()}\n"
            "</div>"
        )
    parts.append(f'<div class="conclusion">\n{conclusion}\n</div>')
    parts.append(f'<div class="bibliography">\n{bibliography}\n</div>')
    return "\n\n".join(parts)
