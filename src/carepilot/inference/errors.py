"""Inference gateway error taxonomy."""

from __future__ import annotations


class InferenceError(Exception):
    """Base class for every gateway failure."""


class RateLimited(InferenceError):
    """Provider answered HTTP 429; always retried within the attempt bound."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class TransientNetworkError(InferenceError):
    """Connection-level failure (DNS, reset, timeout); retried with backoff."""


class RequestFailed(InferenceError):
    """Non-429 HTTP error status; terminal for that call."""

    def __init__(self, message: str, *, status: int) -> None:
        super().__init__(message)
        self.status = status


class InvalidResponse(InferenceError):
    """Response body or content does not have the expected shape. Never retried."""


class MaxRetriesExceeded(InferenceError):
    """Every attempt hit a retryable failure."""

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts
