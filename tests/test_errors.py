"""
Tests for the error taxonomy and observability helpers.
"""

import io
import json
import logging

from mcpbridge.framework.errors import (
    BridgeError,
    EndpointNotAllowedError,
    ErrorCode,
    ErrorSeverity,
    ToolError,
    ToolInputError,
)
from mcpbridge.observability.logging import JSONFormatter, configure_logging
from mcpbridge.observability.reporting import (
    ErrorReporter,
    LoggingErrorReporter,
    NullReporter,
    create_reporter,
)


class TestErrors:
    """Test framework exceptions."""

    def test_tool_error_keeps_cause(self) -> None:
        """Test ToolError records its cause and metadata."""
        cause = KeyError("build")
        error = ToolError("Build not found", tool_name="builds_get_build", cause=cause)

        assert error.__cause__ is cause
        assert error.severity == ErrorSeverity.USER_ERROR
        assert error.to_dict()["details"]["tool"] == "builds_get_build"

    def test_input_error_is_tool_error(self) -> None:
        """Test validation failures share the expected-error tier."""
        error = ToolInputError("Invalid arguments", tool_name="t", path=["limit"])

        assert isinstance(error, ToolError)
        assert error.code == ErrorCode.TOOL_INPUT_ERROR
        assert error.details["path"] == ["limit"]

    def test_endpoint_error(self) -> None:
        """Test the disallowed endpoint message and details."""
        error = EndpointNotAllowedError("https://evil.com", client="Builds", key="endpoint")

        assert str(error) == "URL https://evil.com is not allowed"
        assert isinstance(error, BridgeError)
        assert error.to_details().context == {
            "client": "Builds",
            "key": "endpoint",
            "url": "https://evil.com",
        }


class TestReporting:
    """Test error reporters."""

    def test_create_reporter(self) -> None:
        """Test the reporter follows the error_reporting switch."""
        assert isinstance(create_reporter(True), LoggingErrorReporter)
        assert isinstance(create_reporter(False), NullReporter)
        assert isinstance(NullReporter(), ErrorReporter)

    def test_logging_reporter_counts(self, caplog) -> None:
        """Test reported errors are logged with traceback."""
        reporter = LoggingErrorReporter()

        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            reporter.notify(e, {"tool": "builds_get_build"})

        assert reporter.reported == 1
        assert "Unhandled RuntimeError: boom" in caplog.text


class TestLogging:
    """Test logging setup."""

    def test_json_formatter(self) -> None:
        """Test structured log lines carry the tool field."""
        record = logging.LogRecord("mcpbridge", logging.INFO, __file__, 1, "hello %s", ("x",), None)
        record.tool = "builds_get_build"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hello x"
        assert data["level"] == "INFO"
        assert data["tool"] == "builds_get_build"

    def test_json_formatter_correlation_id(self) -> None:
        """Test structured log lines carry the invocation correlation id."""
        record = logging.LogRecord("mcpbridge", logging.INFO, __file__, 1, "done", (), None)
        record.correlation_id = "c0ffee"

        data = json.loads(JSONFormatter().format(record))

        assert data["correlation_id"] == "c0ffee"

    def test_configure_logging_replaces_handler(self) -> None:
        """Test repeated setup installs a single handler."""
        root = logging.getLogger()
        level = root.level
        try:
            first = configure_logging("DEBUG", stream=io.StringIO())
            second = configure_logging("WARNING", structured=True, stream=io.StringIO())

            assert first not in root.handlers
            assert second in root.handlers
            assert root.level == logging.WARNING
        finally:
            root.removeHandler(second)
            root.setLevel(level)
