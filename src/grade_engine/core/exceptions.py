"""
Custom exception hierarchy for the grading engine.

Provides a consistent error handling approach across all modules.
"""

from typing import Iterable


class GradingEngineError(Exception):
    """
    Base exception for all grading engine errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ==================== Configuration Errors ====================

class ConfigurationError(GradingEngineError):
    """Raised when required configuration is missing or invalid."""
    pass


# ==================== Input Errors ====================

class ValidationError(GradingEngineError):
    """
    Malformed caller input.

    Always raised before any state mutation; the caller can correct
    the input and retry.
    """
    pass


# ==================== Workflow Errors ====================

class WorkflowError(GradingEngineError):
    """Base error for submission lifecycle violations."""
    pass


class NotReadyError(WorkflowError):
    """Raised when publish is requested while questions remain ungraded."""

    def __init__(self, submission_id: str, missing_question_ids: Iterable[str]):
        missing = list(missing_question_ids)
        super().__init__(
            f"Submission {submission_id} has ungraded questions: {', '.join(missing)}",
            {'submission_id': submission_id, 'missing_question_ids': missing}
        )
        self.submission_id = submission_id
        self.missing_question_ids = missing


class AlreadyPublishedError(WorkflowError):
    """Raised by any mutating call on a published submission."""

    def __init__(self, submission_id: str):
        super().__init__(
            f"Submission {submission_id} is already published",
            {'submission_id': submission_id}
        )
        self.submission_id = submission_id


# ==================== Provider Errors ====================

class ProviderError(GradingEngineError):
    """
    Base error for AI provider issues.

    Raised when there's a problem with an AI provider.
    """
    pass


class APIConnectionError(ProviderError):
    """Raised when connection to AI API fails."""
    pass


class APITimeoutError(ProviderError):
    """Raised when an AI API call times out."""
    pass


class APIResponseError(ProviderError):
    """Raised when API returns an unexpected or invalid response."""
    pass


class ParsingError(ProviderError):
    """Raised when parsing AI response fails."""
    pass


class GradingServiceUnavailable(ProviderError):
    """
    The batch grading service could not produce a usable answer.

    Internal to the AI grading client: it is always converted into
    fallback scores and never reaches the workflow controller.
    """
    pass


# ==================== Storage Errors ====================

class StorageError(GradingEngineError):
    """
    Base error for storage-related issues.

    Propagated unchanged to the caller.
    """
    pass


class SubmissionNotFoundError(StorageError):
    """Raised when a requested submission doesn't exist."""
    pass


class AssignmentNotFoundError(StorageError):
    """Raised when a requested assignment doesn't exist."""
    pass


class SerializationError(StorageError):
    """Raised when a stored record cannot be deserialized."""
    pass
