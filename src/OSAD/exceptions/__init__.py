"""
OSAD Exception Hierarchy

Every error raised by the dashboard data layer derives from OSADError and
carries a machine-readable code, a severity and a retry classification so
that pages can decide between an advisory notice, a blocking error and a
redirect to login.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    """How loudly a page should surface the error."""

    LOW = "low"  # inline hint next to a form field
    MEDIUM = "medium"  # advisory notice, auto-dismissed
    HIGH = "high"  # blocking notice until acted upon
    CRITICAL = "critical"  # session-level: back to login


class RetryPolicy(Enum):
    """Whether repeating the same call may help."""

    NEVER = "never"  # Auth failures, client-side validation
    IMMEDIATE = "immediate"  # Temporary network glitch on a read
    BACKOFF = "backoff"  # Retry after a short fixed delay


_FATAL = (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL)


class OSADError(Exception):
    """
    Base class for all OSAD errors.

    ``context`` holds whatever identifies the failed call (url, method, HTTP
    status, form field) and is what gets logged; ``message`` is what the
    user sees.
    """

    error_code = "osad_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retry_policy: RetryPolicy = RetryPolicy.NEVER,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.severity = severity
        self.retry_policy = retry_policy
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        # Drop empty entries so log lines stay short.
        self.context = {k: v for k, v in (context or {}).items() if v is not None}

    @property
    def is_fatal(self) -> bool:
        """Fatal errors block the page and are never auto-dismissed."""
        return self.severity in _FATAL

    def is_retryable(self) -> bool:
        return self.retry_policy is not RetryPolicy.NEVER

    def get_user_message(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Flat structure for structured logs and error banners."""
        return {
            "exception_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.get_user_message(),
            "severity": self.severity.value,
            "retry_policy": self.retry_policy.value,
            "fatal": self.is_fatal,
            "timestamp": self.timestamp.isoformat(),
            "context": dict(self.context),
            "cause": repr(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code!r}, {self.message!r})"


class ValidationError(OSADError):
    """Raised when a request is rejected client-side before any network call."""

    error_code = "validation_failed"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            retry_policy=RetryPolicy.NEVER,
            context={**(context or {}), "field": field},
        )
        self.field = field


from .http_errors import (  # noqa: E402
    AuthenticationRequiredError,
    AuthExpiredError,
    DashboardDataError,
    WriteFailedError,
)

__all__ = [
    "ErrorSeverity",
    "RetryPolicy",
    "OSADError",
    "ValidationError",
    "AuthenticationRequiredError",
    "AuthExpiredError",
    "DashboardDataError",
    "WriteFailedError",
]
