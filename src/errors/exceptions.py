"""Custom exception types for the document generation pipeline.

This module defines a hierarchy of exceptions for categorizing errors
throughout the pipeline, so stages, the orchestrator and the HTTP API
can handle them in a targeted way.
"""

from typing import Any


class PipelineError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        details: Additional error context
        recoverable: Whether a later attempt can succeed
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Workflow-Level Errors
# =============================================================================


class WorkflowError(PipelineError):
    """Error at the orchestration level.

    Raised when there are issues with work item state or routing.
    """

    def __init__(
        self,
        message: str,
        work_item_id: str | None = None,
        stage: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ):
        details = details or {}
        if work_item_id:
            details["work_item_id"] = work_item_id
        if stage:
            details["stage"] = stage
        super().__init__(message, details, recoverable)
        self.work_item_id = work_item_id
        self.stage = stage


class WorkItemNotFoundError(WorkflowError):
    """The referenced work item does not exist."""

    def __init__(self, work_item_id: str):
        super().__init__(f"Work item {work_item_id} not found", work_item_id=work_item_id)


class InvalidTransitionError(WorkflowError):
    """A status change would move a record backwards or out of a terminal state."""

    def __init__(
        self,
        current: str,
        target: str,
        work_item_id: str | None = None,
    ):
        super().__init__(
            f"Invalid status transition {current} -> {target}",
            work_item_id=work_item_id,
            details={"current": current, "target": target},
        )
        self.current = current
        self.target = target


class QueueFullError(WorkflowError):
    """The worker pool queue is at capacity."""

    def __init__(self, capacity: int):
        super().__init__(
            f"Pipeline queue is full ({capacity} items)",
            details={"capacity": capacity},
            recoverable=True,
        )
        self.capacity = capacity


# =============================================================================
# API-Related Errors
# =============================================================================


class APIError(PipelineError):
    """Error from external API calls.

    Base class for errors from the completion service, the search API
    and the scraping service.
    """

    def __init__(
        self,
        message: str,
        service: str,
        status_code: int | None = None,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        details = details or {}
        details["service"] = service
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body[:500]  # Truncate
        super().__init__(message, details, recoverable)
        self.service = service
        self.status_code = status_code


class RateLimitError(APIError):
    """Rate limit exceeded on an external API.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided)
    """

    def __init__(
        self,
        message: str,
        service: str,
        retry_after: float | None = None,
        status_code: int = 429,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(
            message,
            service=service,
            status_code=status_code,
            details=details,
            recoverable=True,
        )
        self.retry_after = retry_after


class CompletionError(APIError):
    """The completion service failed or returned an unusable answer.

    Completion errors are never retried inside a stage; they abort it.
    """

    def __init__(
        self,
        message: str,
        model: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if model:
            details["model"] = model
        super().__init__(
            message,
            service="anthropic",
            status_code=status_code,
            details=details,
        )
        self.model = model


# =============================================================================
# Stage Errors
# =============================================================================


class FormulationError(PipelineError):
    """The search query could not be formulated."""

    def __init__(
        self,
        message: str,
        topic: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if topic:
            details["topic"] = topic[:200]
        super().__init__(message, details)
        self.topic = topic


class SearchError(PipelineError):
    """Error during web search operations."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        source: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        details = details or {}
        if query:
            details["query"] = query[:200]  # Truncate
        if source:
            details["source"] = source
        super().__init__(message, details, recoverable)
        self.query = query
        self.source = source


class NoSearchResultsError(SearchError):
    """Neither the formulated nor the simplified query returned results."""

    def __init__(
        self,
        query: str,
        fallback_query: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if fallback_query:
            details["fallback_query"] = fallback_query
        super().__init__(
            f"No search results for '{query}'",
            query=query,
            source="google",
            details=details,
        )
        self.fallback_query = fallback_query


class ScrapeError(PipelineError):
    """Scraping a single URL failed."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details["url"] = url
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class NoUsableSourcesError(PipelineError):
    """No source could be scraped for a work item."""

    def __init__(self, work_item_id: str, attempted: int):
        super().__init__(
            f"No usable sources for work item {work_item_id} ({attempted} attempted)",
            details={"work_item_id": work_item_id, "attempted": attempted},
        )
        self.attempted = attempted


class WritingError(PipelineError):
    """Error during outline or content generation.

    Raised when a generation stage cannot produce or parse its output,
    or when a precondition record is missing.
    """

    def __init__(
        self,
        message: str,
        section: str | None = None,
        word_count: int | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        details = details or {}
        if section:
            details["section"] = section
        if word_count:
            details["word_count"] = word_count
        super().__init__(message, details, recoverable)
        self.section = section
        self.word_count = word_count
