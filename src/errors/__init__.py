"""Error handling for the document generation pipeline.

This module provides:
- Custom exception types for pipeline errors
- RetryPolicy configuration for search API calls
- Error response and logging helpers
"""

from src.errors.exceptions import (
    PipelineError,
    WorkflowError,
    WorkItemNotFoundError,
    InvalidTransitionError,
    QueueFullError,
    APIError,
    RateLimitError,
    CompletionError,
    FormulationError,
    SearchError,
    NoSearchResultsError,
    ScrapeError,
    NoUsableSourcesError,
    WritingError,
)
from src.errors.policies import (
    RetryPolicy,
    retry_async,
    create_search_retry_policy,
    NO_RETRY_POLICY,
)
from src.errors.handlers import (
    create_error_response,
    detect_error_category,
    http_status_for,
    log_error_with_context,
)

__all__ = [
    # Exceptions
    "PipelineError",
    "WorkflowError",
    "WorkItemNotFoundError",
    "InvalidTransitionError",
    "QueueFullError",
    "APIError",
    "RateLimitError",
    "CompletionError",
    "FormulationError",
    "SearchError",
    "NoSearchResultsError",
    "ScrapeError",
    "NoUsableSourcesError",
    "WritingError",
    # Policies
    "RetryPolicy",
    "retry_async",
    "create_search_retry_policy",
    "NO_RETRY_POLICY",
    # Handlers
    "create_error_response",
    "detect_error_category",
    "http_status_for",
    "log_error_with_context",
]
