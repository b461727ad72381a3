"""Tests for the structured logging utilities."""

import logging
import time
from unittest.mock import MagicMock, patch

from aac_icon_import.utils.logging import (
    LogContext,
    PerformanceMetrics,
    ProgressTracker,
    StructuredLogFormatter,
    StructuredLogger,
    clear_context,
    configure_logging,
    get_extra_context,
    get_job_id,
    get_logger,
    get_request_id,
    set_extra_context,
    set_job_id,
    set_request_id,
    timed_operation,
)


def _record(msg: str = "Test message") -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestContextVariables:
    """Tests for context variable management."""

    def setup_method(self) -> None:
        clear_context()

    def teardown_method(self) -> None:
        clear_context()

    def test_request_id_default_none(self) -> None:
        assert get_request_id() is None

    def test_set_and_get_ids(self) -> None:
        set_request_id("req-123")
        set_job_id("job-456")
        assert get_request_id() == "req-123"
        assert get_job_id() == "job-456"

    def test_clear_context(self) -> None:
        set_request_id("req-123")
        set_job_id("job-456")
        set_extra_context({"workbook": "icons.xlsx"})

        clear_context()

        assert get_request_id() is None
        assert get_job_id() is None
        assert get_extra_context() == {}


class TestPerformanceMetrics:
    """Tests for PerformanceMetrics dataclass."""

    def test_finish_calculates_duration(self) -> None:
        metrics = PerformanceMetrics(operation="icon_import")
        time.sleep(0.01)
        metrics.finish()

        assert metrics.end_time is not None
        assert metrics.duration_seconds > 0

    def test_to_dict_with_all_fields(self) -> None:
        metrics = PerformanceMetrics(
            operation="icon_import",
            rows_read=12,
            icons_created=10,
            images_fetched=10,
            bytes_downloaded=2048,
            custom_metrics={"folders_created": 2},
        )
        result = metrics.to_dict()

        assert result["operation"] == "icon_import"
        assert result["rows_read"] == 12
        assert result["icons_created"] == 10
        assert result["images_fetched"] == 10
        assert result["bytes_downloaded"] == 2048
        assert result["custom_metrics"] == {"folders_created": 2}

    def test_to_dict_excludes_zero_values(self) -> None:
        result = PerformanceMetrics(operation="icon_import").to_dict()

        assert "icons_created" not in result
        assert "bytes_downloaded" not in result
        assert "custom_metrics" not in result


class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def setup_method(self) -> None:
        self.logger = get_logger("test_logger")

    def test_get_logger_returns_structured_logger(self) -> None:
        assert isinstance(get_logger(__name__), StructuredLogger)
        assert isinstance(self.logger.logger, logging.Logger)

    def test_build_message_with_kwargs(self) -> None:
        msg = self.logger._build_message("Skipping existing icon", icon="Juice", n=2)
        assert msg == "Skipping existing icon | icon=Juice, n=2"

    def test_build_message_without_kwargs(self) -> None:
        assert self.logger._build_message("Plain") == "Plain"

    @patch.object(logging.Logger, "info")
    def test_info_logging(self, mock_info: MagicMock) -> None:
        self.logger.info("Folder created", folder="Snacks")
        mock_info.assert_called_once()
        call_args = mock_info.call_args[0][0]
        assert "Folder created" in call_args
        assert "folder=Snacks" in call_args

    @patch.object(logging.Logger, "log")
    def test_log_fetch_success_is_debug(self, mock_log: MagicMock) -> None:
        self.logger.log_fetch("http://x/juice.png", 0.25, size_bytes=1024)

        level, message = mock_log.call_args[0]
        assert level == logging.DEBUG
        assert "url=http://x/juice.png" in message
        assert "size_bytes=1024" in message
        assert "success=True" in message

    @patch.object(logging.Logger, "log")
    def test_log_fetch_failure_is_warning(self, mock_log: MagicMock) -> None:
        self.logger.log_fetch(
            "http://x/bad.png", 1.5, success=False, error_message="HTTP 404"
        )

        level, message = mock_log.call_args[0]
        assert level == logging.WARNING
        assert "success=False" in message
        assert "error=HTTP 404" in message

    @patch.object(logging.Logger, "info")
    def test_log_import_result(self, mock_info: MagicMock) -> None:
        self.logger.log_import_result(
            created=3,
            skipped=1,
            folders=2,
            failed_fetches=1,
            duration_seconds=4.5,
            cancelled=True,
        )

        message = mock_info.call_args[0][0]
        assert "Import completed" in message
        assert "created=3" in message
        assert "skipped=1" in message
        assert "failed_fetches=1" in message
        assert "cancelled=True" in message

    @patch.object(logging.Logger, "info")
    def test_log_progress(self, mock_info: MagicMock) -> None:
        self.logger.log_progress("Downloading images", 5, 10, details="Juice")

        message = mock_info.call_args[0][0]
        assert "Progress: Downloading images" in message
        assert "percentage=50.0%" in message
        assert "details=Juice" in message


class TestLogContext:
    """Tests for LogContext context manager."""

    def setup_method(self) -> None:
        clear_context()

    def teardown_method(self) -> None:
        clear_context()

    def test_context_sets_and_restores_values(self) -> None:
        set_job_id("original-job")
        set_extra_context({"original": "value"})

        with LogContext(job_id="new-job", workbook="icons.xlsx"):
            assert get_job_id() == "new-job"
            assert get_extra_context() == {"original": "value", "workbook": "icons.xlsx"}

        assert get_job_id() == "original-job"
        assert get_extra_context() == {"original": "value"}

    def test_context_does_not_mutate_arguments(self) -> None:
        kwargs = {"job_id": "job-1", "workbook": "a.xlsx"}
        context = LogContext(**kwargs)

        with context:
            pass
        with context:
            assert get_job_id() == "job-1"

    def test_nested_contexts(self) -> None:
        with LogContext(request_id="req-1", job_id="outer-job"):
            with LogContext(job_id="inner-job"):
                assert get_job_id() == "inner-job"
                assert get_request_id() == "req-1"
            assert get_job_id() == "outer-job"

        assert get_request_id() is None


class TestTimedOperation:
    """Tests for timed_operation context manager."""

    @patch.object(StructuredLogger, "log_performance")
    def test_timed_operation_logs_metrics(self, mock_log: MagicMock) -> None:
        logger = get_logger("test")
        with timed_operation(logger, "icon_import") as metrics:
            metrics.icons_created = 4

        mock_log.assert_called_once()
        logged = mock_log.call_args[0][0]
        assert logged.operation == "icon_import"
        assert logged.icons_created == 4
        assert logged.end_time is not None


class TestProgressTracker:
    """Tests for ProgressTracker class."""

    @patch.object(StructuredLogger, "log_progress")
    def test_update_with_interval(self, mock_log: MagicMock) -> None:
        tracker = ProgressTracker(get_logger("test"), "Downloading", total=5, log_interval=2)
        for _ in range(5):
            tracker.update()

        # Logged at 2, 4 and at the final item.
        assert mock_log.call_count == 3
        assert tracker.current == 5


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_with_string_level(self) -> None:
        configure_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_with_structured_formatter(self) -> None:
        configure_logging(level=logging.INFO, use_structured_formatter=True)
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, StructuredLogFormatter)


class TestStructuredLogFormatter:
    """Tests for StructuredLogFormatter class."""

    def setup_method(self) -> None:
        clear_context()

    def teardown_method(self) -> None:
        clear_context()

    def test_format_without_context(self) -> None:
        result = StructuredLogFormatter("%(message)s").format(_record())
        assert result == "Test message"

    def test_format_with_ids_and_extra_context(self) -> None:
        set_request_id("req-123")
        set_job_id("job-456")
        set_extra_context({"workbook": "icons.xlsx"})

        result = StructuredLogFormatter("%(message)s").format(_record())

        assert result.startswith("[request_id=req-123 job_id=job-456 workbook=icons.xlsx]")
        assert result.endswith("Test message")
