"""
Logging setup and error reporting for the server process.
"""

from .logging import JSONFormatter, configure_logging
from .reporting import ErrorReporter, LoggingErrorReporter, NullReporter, create_reporter

__all__ = [
    "ErrorReporter",
    "JSONFormatter",
    "LoggingErrorReporter",
    "NullReporter",
    "configure_logging",
    "create_reporter",
]
