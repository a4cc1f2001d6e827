"""
Exception classes for glue-sync.
"""

from typing import Any, Dict, Optional


class GlueSyncError(Exception):
    """Base exception for all glue-sync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(GlueSyncError):
    """Raised when there's an error in configuration."""

    pass


class ValidationError(GlueSyncError):
    """Raised when there's a validation error."""

    pass


class TranslationError(GlueSyncError):
    """Raised when a catalog event cannot be turned into a statement."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = dict(details or {})
        if table:
            details["table"] = table
        super().__init__(message, details)
        self.table = table


class RemoteError(GlueSyncError):
    """Raised when there's an error talking to the remote catalog endpoint."""

    pass


class RemoteConnectionError(RemoteError):
    """Raised when the remote endpoint cannot be reached or the connection is gone."""

    pass


class ProcessorError(GlueSyncError):
    """Raised when there's an error with the queue processor."""

    pass


class NotificationError(GlueSyncError):
    """Raised when a notification cannot be delivered."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details = {}
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body

        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body
