"""Error handlers shared by the orchestrator and the HTTP API."""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from src.errors.exceptions import (
    APIError,
    CompletionError,
    FormulationError,
    InvalidTransitionError,
    NoUsableSourcesError,
    PipelineError,
    QueueFullError,
    RateLimitError,
    ScrapeError,
    SearchError,
    WorkItemNotFoundError,
    WritingError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Creation
# =============================================================================


def create_error_response(
    error: Exception,
    stage: str | None = None,
    include_traceback: bool = False,
) -> dict[str, Any]:
    """Create a standardized error response dictionary.

    Args:
        error: The exception that occurred
        stage: Pipeline stage where the error occurred
        include_traceback: Whether to include full traceback

    Returns:
        Standardized error response dictionary
    """
    if isinstance(error, PipelineError):
        response = {
            "error_type": error.__class__.__name__,
            "category": detect_error_category(error),
            "message": error.message,
            "details": error.details,
            "recoverable": error.recoverable,
        }
    else:
        response = {
            "error_type": error.__class__.__name__,
            "category": detect_error_category(error),
            "message": str(error),
            "details": {},
            "recoverable": True,
        }

    if stage:
        response["stage"] = stage

    response["timestamp"] = datetime.now(timezone.utc).isoformat()

    if include_traceback:
        response["traceback"] = traceback.format_exc()

    return response


def detect_error_category(error: Exception) -> str:
    """Detect error category from exception type."""
    if isinstance(error, RateLimitError):
        return "rate_limit"
    elif isinstance(error, CompletionError):
        return "completion_error"
    elif isinstance(error, APIError):
        return "api_error"
    elif isinstance(error, FormulationError):
        return "formulation_error"
    elif isinstance(error, SearchError):
        return "search_error"
    elif isinstance(error, (ScrapeError, NoUsableSourcesError)):
        return "scrape_error"
    elif isinstance(error, WritingError):
        return "writing_error"
    elif isinstance(error, WorkItemNotFoundError):
        return "not_found"
    elif isinstance(error, InvalidTransitionError):
        return "invalid_transition"
    elif isinstance(error, QueueFullError):
        return "queue_full"
    elif isinstance(error, (TimeoutError, ConnectionError)):
        return "connection_error"
    return "unknown"


def http_status_for(error: Exception) -> int:
    """HTTP status code the API returns for an error."""
    if isinstance(error, WorkItemNotFoundError):
        return 404
    if isinstance(error, InvalidTransitionError):
        return 409
    if isinstance(error, QueueFullError):
        return 503
    if isinstance(error, PipelineError):
        return 502 if isinstance(error, APIError) else 422
    return 500


# =============================================================================
# Error Logging
# =============================================================================


def log_error_with_context(
    error: Exception,
    stage: str | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error with full context.

    Args:
        error: The exception that occurred
        stage: Pipeline stage where the error occurred
        context: Additional context to log
        level: Logging level (default: ERROR)
    """
    parts = [f"Error: {error.__class__.__name__}: {error}"]

    if stage:
        parts.append(f"Stage: {stage}")

    if isinstance(error, PipelineError):
        if error.details:
            parts.append(f"Details: {error.details}")
        parts.append(f"Recoverable: {error.recoverable}")

    if context:
        parts.append(f"Context: {context}")

    logger.log(level, " | ".join(parts))

    # Log traceback at debug level
    logger.debug(f"Traceback:\n{traceback.format_exc()}")
