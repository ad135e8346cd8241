"""Completion service client built on ChatAnthropic.

Every generation stage talks to the LLM through ``CompletionClient``, which
returns the text together with token usage and wall-clock duration so the
stages can persist per-call metrics.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import anthropic
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from src.config import settings
from src.errors import CompletionError, RateLimitError

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[str, float, int], BaseChatModel]


@dataclass
class CompletionResult:
    """Text and metrics of one completion call."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    model: str = ""
    stop_reason: str | None = None

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


def create_model(
    model_name: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 4096,
) -> ChatAnthropic:
    """
    Create a ChatAnthropic model instance.

    Args:
        model_name: Claude model to use (default from settings).
        temperature: Sampling temperature.
        max_tokens: Maximum tokens in response.

    Returns:
        Configured ChatAnthropic instance.
    """
    return ChatAnthropic(
        model=model_name or settings.default_model,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=settings.anthropic_api_key,
    )


def _response_text(content: Any) -> str:
    """Flatten a message content (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class CompletionClient:
    """
    Thin async wrapper over a chat model.

    Completion errors are never retried here; they propagate as
    ``CompletionError`` (or ``RateLimitError``) and abort the calling stage.
    """

    def __init__(self, chat_model_factory: ChatModelFactory | None = None):
        self._factory = chat_model_factory or create_model

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> CompletionResult:
        """
        Send one prompt and return the answer with its metrics.

        Args:
            prompt: User prompt.
            system: Optional system prompt.
            model: Model name (default from settings).
            max_tokens: Output token limit.
            temperature: Sampling temperature.

        Returns:
            CompletionResult with text, token usage and duration.

        Raises:
            RateLimitError: The service rejected the call with 429.
            CompletionError: Any other failure or an empty answer.
        """
        model_name = model or settings.default_model
        llm = self._factory(model_name, temperature, max_tokens)

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        start = time.perf_counter()
        try:
            response = await llm.ainvoke(messages)
        except anthropic.RateLimitError as e:
            raise RateLimitError(
                f"Completion rate limited: {e}", service="anthropic"
            ) from e
        except anthropic.APIStatusError as e:
            raise CompletionError(
                f"Completion failed: {e}", model=model_name, status_code=e.status_code
            ) from e
        except Exception as e:
            raise CompletionError(f"Completion failed: {e}", model=model_name) from e
        duration_ms = int((time.perf_counter() - start) * 1000)

        text = _response_text(response.content).strip()
        if not text:
            raise CompletionError("Completion returned an empty answer", model=model_name)

        usage = getattr(response, "usage_metadata", None) or {}
        metadata = getattr(response, "response_metadata", None) or {}
        stop_reason = metadata.get("stop_reason")
        if stop_reason == "max_tokens":
            logger.warning(f"Completion hit max_tokens={max_tokens} ({model_name})")

        return CompletionResult(
            text=text,
            input_tokens=int(usage.get("input_tokens", 0) or 0),
            output_tokens=int(usage.get("output_tokens", 0) or 0),
            duration_ms=duration_ms,
            model=model_name,
            stop_reason=stop_reason,
        )
