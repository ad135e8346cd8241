"""Outline writer for generic documents.

Produces the list of <h2> headers, each followed by a description of what
the section should cover, sized to the target length.
"""

from src.output.sizing import description_detail, per_section_budget
from src.writers.base import BaseSectionWriter, WritingContext


class OutlineWriter(BaseSectionWriter):
    """Writer for the header structure of a generic document."""

    section_type = "outline"
    section_title = "Outline"
    temperature = 0.7
    max_tokens = 16000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are an experienced content strategist planning the structure of a text.
You design header structures that cover a topic completely and fit the requested length.
{self._get_common_instructions(context.item)}"""

    def get_user_prompt(self, context: WritingContext) -> str:
        item = context.item
        budget = per_section_budget(item.target_length, context.header_count)
        return f"""Plan the structure of the following text.

{self._format_request(item)}
TARGET LENGTH: {item.target_length} characters in total (about {budget} characters per section)

REQUIREMENTS:
- exactly {context.header_count} headers, each written as <h2>Header</h2>
- under each header a <p> with {description_detail(item.target_length)}
- do NOT include an introduction or a conclusion header
- headers follow a logical order and do not overlap
- base the structure on the sources below where they are relevant

SOURCES:
{self._format_sources(context.sources)}

Output only the {context.header_count} <h2> headers with their <p> descriptions."""
