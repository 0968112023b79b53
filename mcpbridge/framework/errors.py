"""
Error taxonomy for tool registration and execution.

Two tiers of failure are distinguished:
- Expected failures (ToolError and its subclasses) are user-actionable. They
  are returned to the host as an error result and never reported.
- Everything else is unexpected: reported once to the error reporter and
  re-raised unchanged.

Key features:
- Error code enums (avoid typos)
- Severity levels (fatal, transient, user_error)
- Pydantic models for structured error details
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Error Codes and Severity
# ============================================================================


class ErrorCode(str, Enum):
    """Enumeration of all error codes in the system."""

    # Tool execution
    TOOL_ERROR = "TOOL_ERROR"
    TOOL_INPUT_ERROR = "TOOL_INPUT_ERROR"
    TOOL_OUTPUT_CONTRACT = "TOOL_OUTPUT_CONTRACT"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"

    # Registration
    TOOL_DISCOVERY_ERROR = "TOOL_DISCOVERY_ERROR"
    DUPLICATE_TOOL = "DUPLICATE_TOOL"

    # Configuration
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    ENDPOINT_NOT_ALLOWED = "ENDPOINT_NOT_ALLOWED"


class ErrorSeverity(str, Enum):
    """Error severity for alerting."""

    FATAL = "fatal"  # Unrecoverable, requires intervention
    TRANSIENT = "transient"  # Temporary, retryable
    USER_ERROR = "user_error"  # User mistake, not retryable


# ============================================================================
# Pydantic Error Models
# ============================================================================


class ErrorDetails(BaseModel):
    """Structured error details for serialization."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: ErrorCode = Field(..., description="Error code enum")
    message: str = Field(..., description="Human-readable error message")
    context: dict[str, Any] = Field(default_factory=dict, description="Additional context")
    severity: ErrorSeverity = Field(default=ErrorSeverity.FATAL, description="Error severity")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()


# ============================================================================
# Base Exception Class
# ============================================================================


class BridgeError(Exception):
    """Base class for all framework errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
        severity: ErrorSeverity = ErrorSeverity.FATAL,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.severity = severity

    def to_details(self) -> ErrorDetails:
        """Convert to structured ErrorDetails."""
        return ErrorDetails(
            code=self.code, message=self.message, context=self.details, severity=self.severity
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "error": self.code.value,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }


# ============================================================================
# Expected Tool Errors
# ============================================================================


class ToolError(BridgeError):
    """
    Expected, user-facing tool failure.

    Raised by handlers for bad input, missing resources, permission problems
    or upstream responses the handler has already made sense of. The server
    turns these into an error result for the host; they are never reported.
    """

    def __init__(
        self,
        message: str,
        tool_name: str | None = None,
        cause: BaseException | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        details: dict[str, Any] = dict(metadata or {})
        if tool_name:
            details["tool"] = tool_name
        if cause is not None:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__
        super().__init__(message, ErrorCode.TOOL_ERROR, details, severity=ErrorSeverity.USER_ERROR)
        self.tool_name = tool_name
        self.cause = cause
        self.metadata = metadata or {}
        if cause is not None:
            self.__cause__ = cause


class ToolInputError(ToolError):
    """Tool arguments failed schema validation."""

    def __init__(self, message: str, tool_name: str, path: list[str] | None = None) -> None:
        super().__init__(message, tool_name=tool_name)
        self.code = ErrorCode.TOOL_INPUT_ERROR
        self.path = path or []
        if path:
            self.details["path"] = path


# ============================================================================
# Programming / Configuration Errors
# ============================================================================


class ToolOutputContractError(BridgeError):
    """A tool declared an output schema but returned no structured content."""

    def __init__(self, tool_title: str) -> None:
        super().__init__(
            f"The result of the tool '{tool_title}' must include 'structuredContent'",
            ErrorCode.TOOL_OUTPUT_CONTRACT,
            {"tool": tool_title},
        )


class ToolNotFoundError(BridgeError):
    """The host called a tool name that was never registered."""

    def __init__(self, tool_name: str, available: list[str] | None = None) -> None:
        super().__init__(
            f"Tool '{tool_name}' not found",
            ErrorCode.TOOL_NOT_FOUND,
            {"tool": tool_name, "available": available or []},
            severity=ErrorSeverity.USER_ERROR,
        )


class ToolDiscoveryError(BridgeError):
    """A tool class could not be instantiated or does not look like a tool."""

    def __init__(self, class_name: str, cause: Exception) -> None:
        super().__init__(
            f"Failed to instantiate tool class {class_name}: {cause}",
            ErrorCode.TOOL_DISCOVERY_ERROR,
            {"class": class_name, "cause_type": type(cause).__name__, "cause": str(cause)},
        )
        self.class_name = class_name
        self.__cause__ = cause


class DuplicateToolError(BridgeError):
    """Two tools resolved to the same name."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(
            f"Tool with name '{tool_name}' is already registered",
            ErrorCode.DUPLICATE_TOOL,
            {"tool": tool_name},
        )
        self.tool_name = tool_name


class ConfigurationError(BridgeError):
    """Invalid client or server configuration."""

    def __init__(self, message: str, client: str | None = None, key: str | None = None) -> None:
        details = {}
        if client:
            details["client"] = client
        if key:
            details["key"] = key
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class EndpointNotAllowedError(ConfigurationError):
    """A configured URL is not in the allowed endpoints list."""

    def __init__(self, url: str, client: str | None = None, key: str | None = None) -> None:
        super().__init__(f"URL {url} is not allowed", client=client, key=key)
        self.code = ErrorCode.ENDPOINT_NOT_ALLOWED
        self.url = url
        self.details["url"] = url
