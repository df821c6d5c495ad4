"""
HTTP-facing exceptions for the dashboard backend client.

Reads that fail fall back to empty values wherever the page has a sensible
default, so most of these surface only from writes or from the auth
preconditions that every call shares.
"""

from typing import Optional, Dict, Any
from . import OSADError, ErrorSeverity, RetryPolicy


class AuthenticationRequiredError(OSADError):
    """No access token is available; the page must show a login prompt."""

    def __init__(self, url: Optional[str] = None) -> None:
        super().__init__(
            message="Authentication required. Please log in.",
            error_code="auth_required",
            severity=ErrorSeverity.CRITICAL,
            retry_policy=RetryPolicy.NEVER,
            context={"url": url} if url else None,
        )
        self.url = url


class AuthExpiredError(OSADError):
    """The backend answered 401. The stored token has already been cleared."""

    def __init__(self, url: Optional[str] = None, method: str = "GET") -> None:
        super().__init__(
            message="Your session has expired. Please log in again.",
            error_code="auth_expired",
            severity=ErrorSeverity.CRITICAL,
            retry_policy=RetryPolicy.NEVER,
            context={"url": url, "method": method},
        )
        self.url = url
        self.method = method


class DashboardDataError(OSADError):
    """
    Raised when a read has no safe default and could not be completed.

    We keep the URL and status code so the page can surface them in its
    retry banner.
    """

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="read_failed",
            severity=ErrorSeverity.MEDIUM,
            retry_policy=RetryPolicy.IMMEDIATE,
            context={"url": url, "status_code": status_code},
            cause=cause,
        )
        self.url = url
        self.status_code = status_code


class WriteFailedError(OSADError):
    """
    Raised when a POST/PUT/DELETE did not succeed.

    This covers non-2xx answers, transport failures, and 2xx answers whose
    body carries no success indicator (some endpoints embed a failure code
    in an HTTP 200).
    """

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        method: str = "POST",
        status_code: Optional[int] = None,
        body_text: Optional[str] = None,
        return_message: Optional[str] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = dict(context or {})
        context.update({"url": url, "method": method, "status_code": status_code})
        super().__init__(
            message=message,
            error_code="write_failed",
            severity=ErrorSeverity.HIGH,
            retry_policy=RetryPolicy.BACKOFF,
            context=context,
            cause=cause,
        )
        self.url = url
        self.method = method
        self.status_code = status_code
        self.body_text = body_text
        self.return_message = return_message

    def get_user_message(self) -> str:
        if self.return_message:
            return f"{self.message}: {self.return_message}"
        return self.message
