"""Bibliography writer for academic works.

The cited works are extracted deterministically from the in-text markers;
the model only expands each one into a full reference entry.
"""

import re

from src.citations import format_marker
from src.output.html import list_items
from src.writers.base import BaseSectionWriter, WritingContext

LIST_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def parse_entries(content: str) -> list[str]:
    """Reference entries from a model answer: <li> items, else one per line."""
    entries = list_items(content)
    if entries:
        return entries
    lines = [LIST_PREFIX.sub("", line).strip() for line in content.splitlines()]
    return [line for line in lines if line and not line.startswith("<")]


class BibliographyWriter(BaseSectionWriter):
    """Writer that expands cited works into reference entries."""

    section_type = "bibliography"
    section_title = "Bibliography"
    temperature = 0.3
    max_tokens = 16000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are an academic librarian preparing the bibliography of a thesis.
Write the entries in this language: {context.item.language}.
Use the Harvard/APA style: Surname, Initial. (year). Title. Place: Publisher.
Answer with an HTML <ol> list only; one <li> per cited work; no commentary."""

    def get_user_prompt(self, context: WritingContext) -> str:
        cited = "\n".join(f"- {format_marker(c)}" for c in context.citations)
        return f"""The thesis "{context.item.topic}" cites the following works (in-text markers):

{cited}

Write one full bibliography entry for EACH cited work above, and only for them.
Use the sources below to identify titles and publishers where possible.

SOURCES:
{self._format_sources(context.sources)}"""
