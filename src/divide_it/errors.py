"""Error hierarchy and retry helpers for divide-it.

Fatal errors (validation, extraction, extraction-time resource failures) abort
a split request. Enrichment failures are caught per stage and recorded on the
artifact; they never escape the enrichment pipeline.
"""

from __future__ import annotations

import functools
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeVar

from divide_it.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    TRANSIENT = "transient"  # network, timeout
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"  # bad request or unreadable source
    CONFIGURATION = "configuration"
    RESOURCE = "resource"  # filesystem or missing binary
    EXTERNAL = "external"  # transcoder or provider failure
    INTERNAL = "internal"


class DivideItError(Exception):
    """Base exception for divide-it errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether retrying may succeed
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ValidationError(DivideItError):
    """Request or source rejected before any extraction work.

    Examples: count out of range, source shorter than the minimum segment,
    no window could be planned.
    """

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class InvalidVideoError(ValidationError):
    """Source could not be probed or has no usable video stream."""


class ExtractionError(DivideItError):
    """The transcoder failed while cutting a window."""

    category = ErrorCategory.EXTERNAL

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ResourceError(DivideItError):
    """Filesystem or binary problem.

    Examples: output directory not writable, pre-overlay backup missing.
    """

    category = ErrorCategory.RESOURCE

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class FFmpegNotFoundError(ResourceError):
    """Neither a bundled nor a system ffmpeg could be located."""


class EnrichmentStageError(DivideItError):
    """A single enrichment stage failed.

    Attributes:
        stage: Name of the failing stage
    """

    category = ErrorCategory.EXTERNAL

    def __init__(self, stage: str, message: str, context: dict | None = None):
        super().__init__(message, {"stage": stage, **(context or {})}, recoverable=True)
        self.stage = stage


class ConfigurationError(DivideItError):
    """Bad or missing configuration, e.g. no API key for a provider."""

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ExternalServiceError(DivideItError):
    """A transcription or summarization provider returned an error."""

    category = ErrorCategory.EXTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message, context, recoverable=recoverable)


class TransientError(DivideItError):
    """Transient error that can be retried."""

    category = ErrorCategory.TRANSIENT

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=True)


class RateLimitError(DivideItError):
    """Provider rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying
    """

    category = ErrorCategory.RATE_LIMIT

    def __init__(
        self,
        message: str,
        retry_after: float = 60.0,
        context: dict | None = None,
    ):
        super().__init__(message, context, recoverable=True)
        self.retry_after = retry_after


@dataclass
class RetryConfig:
    """How provider calls are retried.

    Attributes:
        max_attempts: Attempts in total, the first one included
        initial_delay: Seconds before the first retry
        max_delay: Cap on any single wait
        exponential_base: Growth factor between consecutive waits
        jitter: Spread each wait by up to 25% either way
        retryable_errors: Error types that are retried
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_errors: tuple = (TransientError, RateLimitError, ExternalServiceError)


def calculate_delay(
    attempt: int,
    config: RetryConfig,
    rate_limit_delay: float | None = None,
) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based).

    A rate-limit response's own delay replaces the exponential schedule.
    """
    if rate_limit_delay is None:
        delay = config.initial_delay * config.exponential_base ** (attempt - 1)
    else:
        delay = rate_limit_delay
    delay = min(delay, config.max_delay)
    if not config.jitter:
        return delay
    spread = delay / 4
    return max(0.1, random.uniform(delay - spread, delay + spread))


# Substrings of SDK error messages that indicate a temporary failure
_TRANSIENT_HINTS = (
    "timeout",
    "timed out",
    "connection reset",
    "connection refused",
    "temporarily unavailable",
    "service unavailable",
    "502",
    "503",
    "504",
)


def is_retryable(error: Exception, config: RetryConfig) -> bool:
    """Whether another attempt could succeed.

    Our own errors are judged by type and ``recoverable``; foreign
    exceptions by their message.
    """
    if isinstance(error, config.retryable_errors):
        return getattr(error, "recoverable", True)
    if isinstance(error, DivideItError):
        return False
    message = str(error).lower()
    return any(hint in message for hint in _TRANSIENT_HINTS)


def retry_with_backoff(
    config: RetryConfig | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator retrying a call on retryable errors with exponential backoff.

    Args:
        config: Retry configuration
        sleep: Sleep function, ``time.sleep`` when None

    Returns:
        Decorator function
    """
    config = config or RetryConfig()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = getattr(func, "__qualname__", repr(func))

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable(e, config):
                        raise
                    if attempt >= config.max_attempts:
                        logger.warning(
                            f"{name} still failing after {attempt} attempts",
                            extra={"error_type": type(e).__name__},
                        )
                        raise
                    retry_after = e.retry_after if isinstance(e, RateLimitError) else None
                    delay = calculate_delay(attempt, config, retry_after)
                    logger.info(
                        f"{name} failed ({e}); attempt {attempt + 1}/{config.max_attempts} "
                        f"in {delay:.1f}s"
                    )
                    (sleep or time.sleep)(delay)

        return wrapper

    return decorator


class ErrorContext:
    """Run a block; on failure log it, undo its side effects and re-raise.

    The orchestrator wraps segment extraction in one of these so that a
    failure midway removes every file the request already wrote.

    Attributes:
        error: The exception raised inside the block, if any
    """

    def __init__(
        self,
        operation: str,
        rollback: Callable[[], None] | None = None,
        context: dict | None = None,
    ):
        self.operation = operation
        self.rollback = rollback
        self.context = context or {}
        self.error: Exception | None = None

    def __enter__(self) -> "ErrorContext":
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        if exc_val is None:
            return False

        self.error = exc_val
        logger.error(
            f"{self.operation} failed: {exc_val}",
            extra={"operation": self.operation, "error_type": type(exc_val).__name__, **self.context},
        )
        if self.rollback is not None:
            logger.info(f"Undoing partial {self.operation}")
            try:
                self.rollback()
            except Exception as rollback_error:
                # The original error is the one the caller needs to see
                logger.error(f"Could not undo {self.operation}: {rollback_error}")
        return False


# Substrings that mark an SDK error as a rate limit or a temporary failure
_RATE_LIMIT_HINTS = ("rate limit", "429")
_TEMPORARY_HINTS = ("timeout", "timed out", "connection", "temporary", "unavailable")


def wrap_external_error(
    error: Exception,
    service: str,
    operation: str,
) -> DivideItError:
    """Translate a provider SDK exception into our hierarchy.

    Our own errors pass through unchanged. Anything not recognized as a
    rate limit or a temporary failure becomes a non-recoverable
    ``ExternalServiceError``: a bad model name or a rejected key will not
    fix itself on retry.
    """
    if isinstance(error, DivideItError):
        return error

    text = str(error).lower()
    context = {"service": service, "operation": operation}

    if any(hint in text for hint in _RATE_LIMIT_HINTS):
        return RateLimitError(
            f"{service} rate limit hit during {operation}",
            retry_after=float(getattr(error, "retry_after", None) or 60.0),
            context=context,
        )
    if any(hint in text for hint in _TEMPORARY_HINTS):
        return TransientError(f"{service} {operation} failed temporarily: {error}", context=context)
    return ExternalServiceError(f"{service} {operation} failed: {error}", context=context, recoverable=False)


def format_error_for_display(error: Exception) -> str:
    """One-line message for the CLI, ``[category] message (key=value, ...)``."""
    if not isinstance(error, DivideItError):
        return f"[error] {type(error).__name__}: {error}"

    text = f"[{error.category.value}] {error.message}"
    if error.context:
        text += " (" + ", ".join(f"{key}={value}" for key, value in error.context.items()) + ")"
    return text
