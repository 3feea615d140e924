"""Tests for error handling and logging modules."""

import json
import logging
from pathlib import Path

import pytest

from divide_it.errors import (
    ConfigurationError,
    DivideItError,
    EnrichmentStageError,
    ErrorCategory,
    ErrorContext,
    ExternalServiceError,
    ExtractionError,
    FFmpegNotFoundError,
    InvalidVideoError,
    RateLimitError,
    ResourceError,
    RetryConfig,
    TransientError,
    ValidationError,
    calculate_delay,
    format_error_for_display,
    is_retryable,
    retry_with_backoff,
    wrap_external_error,
)
from divide_it.logging import (
    LogConfig,
    LogContext,
    LogLevel,
    StructuredFormatter,
    configure_logging,
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
)


def _record(message="hello", **extra):
    record = logging.LogRecord(
        name="divide_it.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestErrorCategory:
    """Tests for ErrorCategory enum."""

    def test_categories(self):
        """Test error category values."""
        assert ErrorCategory.TRANSIENT.value == "transient"
        assert ErrorCategory.RATE_LIMIT.value == "rate_limit"
        assert ErrorCategory.VALIDATION.value == "validation"
        assert ErrorCategory.RESOURCE.value == "resource"
        assert ErrorCategory.EXTERNAL.value == "external"


class TestDivideItError:
    """Tests for DivideItError and its subclasses."""

    def test_basic_error(self):
        """Test basic error creation."""
        error = DivideItError("Test error")

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {}
        assert error.recoverable is False
        assert error.category == ErrorCategory.INTERNAL

    def test_error_with_context(self):
        """Context is appended to the string form."""
        error = DivideItError("Test error", context={"key": "value"})

        assert "context: {'key': 'value'}" in str(error)

    def test_fatal_categories(self):
        """Request-fatal errors are not recoverable."""
        assert ValidationError("bad").category == ErrorCategory.VALIDATION
        assert ExtractionError("ffmpeg died").category == ErrorCategory.EXTERNAL
        assert ResourceError("disk").category == ErrorCategory.RESOURCE
        for error in (ValidationError("x"), ExtractionError("x"), ResourceError("x")):
            assert error.recoverable is False

    def test_subclass_relationships(self):
        """Probe and binary failures specialize the broader categories."""
        assert isinstance(InvalidVideoError("x"), ValidationError)
        assert isinstance(FFmpegNotFoundError("x"), ResourceError)

    def test_enrichment_stage_error(self):
        """Stage errors carry the stage name in attribute and context."""
        error = EnrichmentStageError("summarize", "provider down", {"segment": 2})

        assert error.stage == "summarize"
        assert error.context == {"stage": "summarize", "segment": 2}
        assert error.recoverable is True

    def test_rate_limit_error(self):
        """Test rate limit error carries retry_after."""
        error = RateLimitError("Too many requests", retry_after=12.5)

        assert error.retry_after == 12.5
        assert error.category == ErrorCategory.RATE_LIMIT
        assert error.recoverable is True

    def test_external_service_recoverable_flag(self):
        """External service errors are recoverable unless told otherwise."""
        assert ExternalServiceError("x").recoverable is True
        assert ExternalServiceError("x", recoverable=False).recoverable is False


class TestRetryHelpers:
    """Tests for delay calculation and retry decisions."""

    def test_exponential_delay_without_jitter(self):
        """Delays double with each attempt."""
        config = RetryConfig(initial_delay=1.0, exponential_base=2.0, jitter=False)

        assert calculate_delay(1, config) == 1.0
        assert calculate_delay(2, config) == 2.0
        assert calculate_delay(3, config) == 4.0

    def test_delay_capped(self):
        """No delay exceeds max_delay."""
        config = RetryConfig(initial_delay=10.0, max_delay=15.0, jitter=False)

        assert calculate_delay(5, config) == 15.0

    def test_rate_limit_delay_used(self):
        """A requested rate-limit delay replaces the exponential one."""
        config = RetryConfig(jitter=False)

        assert calculate_delay(1, config, rate_limit_delay=7.0) == 7.0

    def test_jitter_stays_in_range(self):
        """Jitter stays within 25% of the base delay."""
        config = RetryConfig(initial_delay=4.0, jitter=True)

        for _ in range(20):
            assert 3.0 <= calculate_delay(1, config) <= 5.0

    def test_is_retryable(self):
        """Transient errors retry, validation and fatal service errors do not."""
        config = RetryConfig()

        assert is_retryable(TransientError("net"), config) is True
        assert is_retryable(RateLimitError("slow down"), config) is True
        assert is_retryable(ExternalServiceError("bad", recoverable=False), config) is False
        assert is_retryable(ValidationError("bad"), config) is False
        assert is_retryable(RuntimeError("Connection reset by peer"), config) is True
        assert is_retryable(RuntimeError("something else"), config) is False


class TestRetryWithBackoff:
    """Tests for the retry decorator."""

    def test_success_after_transient_failures(self):
        """The call is retried until it succeeds."""
        sleeps = []
        calls = {"n": 0}

        @retry_with_backoff(RetryConfig(max_attempts=3, jitter=False), sleep=sleeps.append)
        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise TransientError("timeout")
            return "ok"

        assert flaky() == "ok"
        assert calls["n"] == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self):
        """The last error propagates once attempts run out."""
        sleeps = []

        @retry_with_backoff(RetryConfig(max_attempts=2, jitter=False), sleep=sleeps.append)
        def always_fails():
            raise TransientError("timeout")

        with pytest.raises(TransientError):
            always_fails()
        assert len(sleeps) == 1

    def test_non_retryable_raises_immediately(self):
        """Non-retryable errors are not retried."""
        sleeps = []
        calls = {"n": 0}

        @retry_with_backoff(RetryConfig(max_attempts=5), sleep=sleeps.append)
        def invalid():
            calls["n"] += 1
            raise ValidationError("nope")

        with pytest.raises(ValidationError):
            invalid()
        assert calls["n"] == 1
        assert sleeps == []

    def test_rate_limit_waits_retry_after(self):
        """Rate limit errors wait the requested time."""
        sleeps = []
        calls = {"n": 0}

        @retry_with_backoff(RetryConfig(max_attempts=2, jitter=False), sleep=sleeps.append)
        def limited():
            calls["n"] += 1
            if calls["n"] == 1:
                raise RateLimitError("slow", retry_after=3.0)
            return 1

        assert limited() == 1
        assert sleeps == [3.0]


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_rollback_runs_on_error(self):
        """Rollback runs once and the error propagates."""
        calls = []

        with pytest.raises(ExtractionError):
            with ErrorContext("extract", rollback=lambda: calls.append("rolled back")):
                raise ExtractionError("boom")

        assert calls == ["rolled back"]

    def test_rollback_skipped_on_success(self):
        """Nothing is rolled back when the block succeeds."""
        calls = []

        with ErrorContext("extract", rollback=lambda: calls.append("rolled back")) as ctx:
            pass

        assert calls == []
        assert ctx.error is None

    def test_rollback_failure_does_not_mask_error(self):
        """A failing rollback is logged; the original error still propagates."""

        def bad_rollback():
            raise OSError("cannot delete")

        with pytest.raises(ExtractionError):
            with ErrorContext("extract", rollback=bad_rollback):
                raise ExtractionError("boom")


class TestWrapExternalError:
    """Tests for wrap_external_error."""

    def test_rate_limit(self):
        """429 responses become RateLimitError."""
        error = wrap_external_error(Exception("HTTP 429 Too Many Requests"), "openai", "summarize")

        assert isinstance(error, RateLimitError)
        assert error.context == {"service": "openai", "operation": "summarize"}

    def test_transient(self):
        """Timeouts become TransientError."""
        error = wrap_external_error(Exception("Request timed out"), "anthropic", "title")

        assert isinstance(error, TransientError)

    def test_other_errors(self):
        """Anything else becomes a non-recoverable ExternalServiceError."""
        error = wrap_external_error(Exception("invalid model"), "openai", "transcribe")

        assert isinstance(error, ExternalServiceError)
        assert error.recoverable is False

    def test_passthrough(self):
        """Our own errors are returned unchanged."""
        original = ConfigurationError("no key")

        assert wrap_external_error(original, "openai", "x") is original


class TestFormatErrorForDisplay:
    """Tests for format_error_for_display."""

    def test_divide_it_error(self):
        """Category and context are shown."""
        error = ValidationError("Too short", {"source": "a.mp4"})

        assert format_error_for_display(error) == "[validation] Too short (source=a.mp4)"

    def test_generic_error(self):
        """Other exceptions show their type."""
        assert format_error_for_display(KeyError("x")) == "[error] KeyError: 'x'"


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_text_format_with_context(self):
        """Extra fields are appended as key=value pairs."""
        formatter = StructuredFormatter(include_timestamp=False, color=False)

        line = formatter.format(_record("Cut window", segment=3))

        assert "Cut window" in line
        assert "INFO" in line
        assert "[segment=3]" in line

    def test_json_format(self):
        """JSON output carries level, message and context."""
        formatter = StructuredFormatter(json_format=True, include_timestamp=False)

        data = json.loads(formatter.format(_record("Cut window", segment=3, path=Path("a"))))

        assert data["level"] == "info"
        assert data["message"] == "Cut window"
        assert data["context"]["segment"] == 3
        assert data["context"]["path"] == "a"

    def test_context_can_be_disabled(self):
        """No context is rendered when include_context is False."""
        formatter = StructuredFormatter(include_timestamp=False, include_context=False, color=False)

        assert "segment" not in formatter.format(_record("x", segment=1))


class CaptureHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    """Attach a capturing handler to the package's root logger."""
    configure_logging(LogConfig(level=LogLevel.DEBUG, color=False))
    root = logging.getLogger("divide_it")
    handler = CaptureHandler()
    root.addHandler(handler)
    yield handler
    root.removeHandler(handler)
    configure_logging(LogConfig())


class TestLoggers:
    """Tests for logger helpers."""

    def test_get_logger_propagates(self, captured):
        """Module loggers reach handlers on the package logger."""
        get_logger("divide_it.sample").info("hello")

        assert [r.getMessage() for r in captured.records] == ["hello"]

    def test_with_context(self, captured):
        """Bound context appears on every record."""
        log = get_logger("divide_it.sample").with_context(segment=4)
        log.info("one")
        log.info("two", extra={"stage": "summarize"})

        assert all(r.segment == 4 for r in captured.records)
        assert captured.records[1].stage == "summarize"

    def test_log_context(self, captured):
        """LogContext stamps fields onto records inside the block only."""
        logger = get_logger("divide_it.sample")
        with LogContext(asset_id="abc"):
            logger.info("inside")
        logger.info("outside")

        assert captured.records[0].asset_id == "abc"
        assert not hasattr(captured.records[1], "asset_id")

    def test_operation_helpers(self, captured):
        """Operation helpers log start, completion time and failures."""
        logger = get_logger("divide_it.sample")
        log_operation_start(logger, "split", count=3)
        log_operation_complete(logger, "split", duration=1.234)
        log_operation_failed(logger, "split", ValueError("bad"))

        start, complete, failed = captured.records
        assert start.getMessage() == "Starting: split"
        assert start.count == 3
        assert complete.elapsed_seconds == 1.23
        assert failed.levelno == logging.ERROR
        assert failed.error_type == "ValueError"
        assert failed.error_message == "bad"
