"""Base section writer class.

Provides common functionality for all writers: prompt assembly, the
completion call, HTML normalization and per-call metrics.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from src.citations import CitationMarker
from src.config import settings
from src.errors import WritingError
from src.output.html import text_length, to_html
from src.output.sizing import LimitedSource, format_sources_for_prompt
from src.state.models import Chapter, GenerationMetrics, GenericOutline, WorkItem
from src.tools.completion import CompletionClient
from src.writers.style_guide import get_style_guidelines, language_instruction


@dataclass
class SectionWriterConfig:
    """Configuration for section writers."""

    model_name: str = field(default_factory=lambda: settings.default_model)
    temperature: float = 0.7
    max_tokens: int = 8000


@dataclass
class WritingContext:
    """Everything a writer may need to build its prompt."""

    item: WorkItem
    sources: list[LimitedSource] = field(default_factory=list)

    # Generic path
    outline: GenericOutline | None = None
    header_count: int = 0

    # Academic path
    full_structure: str = ""
    table_of_contents: str = ""
    chapter_count: int = 0
    chapter: Chapter | None = None
    chapter_structure: str = ""
    chapter_excerpts: list[tuple[int, str, str]] = field(default_factory=list)
    previous_chapters: list[tuple[int, str, str]] = field(default_factory=list)
    introduction: str = ""
    citations: list[CitationMarker] = field(default_factory=list)


@dataclass
class WrittenSection:
    """Output of one writer call."""

    content: str
    metrics: GenerationMetrics


class BaseSectionWriter(ABC):
    """
    Base class for all writers.

    Provides common functionality:
    - LLM invocation through the completion client
    - Markdown to HTML normalization
    - Metrics (tokens, time, characters, prompt)
    """

    # Section type (override in subclasses)
    section_type: str = "generic"
    section_title: str = "Section"

    # Completion defaults (override in subclasses)
    temperature: float = 0.7
    max_tokens: int = 8000

    def __init__(
        self,
        completion: CompletionClient,
        config: SectionWriterConfig | None = None,
    ):
        """
        Initialize the section writer.

        Args:
            completion: Completion service client.
            config: Writer configuration (defaults from the subclass).
        """
        self.completion = completion
        self.config = config or SectionWriterConfig(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    @abstractmethod
    def get_system_prompt(self, context: WritingContext) -> str:
        """System prompt for this writer."""

    @abstractmethod
    def get_user_prompt(self, context: WritingContext) -> str:
        """User prompt for this writer."""

    async def write(self, context: WritingContext) -> WrittenSection:
        """
        Write the section.

        Args:
            context: Writing context with all necessary information.

        Returns:
            WrittenSection with HTML content and metrics.

        Raises:
            CompletionError: The completion call failed.
            WritingError: The answer is empty after post-processing.
        """
        system_prompt = self.get_system_prompt(context)
        user_prompt = self.get_user_prompt(context)

        result = await self.completion.complete(
            user_prompt,
            system=system_prompt,
            model=self.config.model_name,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )

        content = self._post_process(result.text, context)
        if not content:
            raise WritingError(
                f"{self.section_title} came back empty", section=self.section_type
            )

        metrics = GenerationMetrics(
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            generation_time_ms=result.duration_ms,
            character_count=text_length(content),
            prompt_used=f"{system_prompt}\n\n{user_prompt}",
        )
        return WrittenSection(content=content, metrics=metrics)

    def _post_process(self, content: str, context: WritingContext) -> str:
        """Normalize the answer to HTML."""
        return to_html(content).strip()

    def _get_common_instructions(self, item: WorkItem) -> str:
        """Writing instructions shared by all writers."""
        return f"""
{language_instruction(item)}

{get_style_guidelines(item)}

FORMAT RULES:
1. Answer in clean HTML only: <h2>, <h3>, <p>, <ul>, <ol>, <li>, <strong>, <em>
2. No Markdown, no code fences, no <html>/<body> wrappers
3. No comments about the task; output only the requested text
"""

    def _format_sources(self, sources: list[LimitedSource]) -> str:
        """Format source texts for the prompt."""
        if not sources:
            return "No sources provided; rely on general knowledge."
        return format_sources_for_prompt(sources)

    def _format_request(self, item: WorkItem) -> str:
        lines = [
            f"TOPIC: {item.topic}",
            f"CONTENT TYPE: {item.content_type}",
        ]
        if item.keywords:
            lines.append(f"KEYWORDS: {', '.join(item.keywords)}")
        if item.guidelines:
            lines.append(f"CUSTOMER GUIDELINES: {item.guidelines}")
        return "\n".join(lines)
