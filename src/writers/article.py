"""Content writer for generic documents (articles, product copy, posts)."""

from src.output.sizing import length_bounds, per_section_budget
from src.writers.base import BaseSectionWriter, WritingContext


class ContentWriter(BaseSectionWriter):
    """Writes the full text of a generic document in one call."""

    section_type = "content"
    section_title = "Content"
    temperature = 0.8
    max_tokens = 16000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are a professional copywriter writing texts commissioned by customers.
You follow the given header structure exactly and respect the length limits.
{self._get_common_instructions(context.item)}"""

    def get_user_prompt(self, context: WritingContext) -> str:
        item = context.item
        outline = context.outline
        headers = outline.header_count if outline and outline.header_count else context.header_count
        budget = per_section_budget(item.target_length, headers)
        low, high = length_bounds(item.target_length)
        structure = outline.structure if outline else ""
        return f"""Write the complete text.

{self._format_request(item)}

STRUCTURE (keep every <h2> header, in this order; the descriptions tell you what to cover):
{structure}

LENGTH:
- total length {item.target_length} characters of text (never above {high}, never below {low}); stay within +20% of the target
- about {budget} characters per section
- count only the visible text, not HTML tags

SOURCES (use facts from them, do not copy sentences):
{self._format_sources(context.sources)}

Write each section as its <h2> header followed by <p> paragraphs (lists where useful).
Do not add an introduction or conclusion section that is not in the structure."""
