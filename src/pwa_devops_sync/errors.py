"""Exceptions raised while talking to Project Online and Azure DevOps."""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes reported on sync results."""

    VALIDATION_FAILED = "ValidationFailed"
    NOT_FOUND = "NotFound"
    AUTH_FAILED = "AuthFailed"
    UNEXPECTED_ERROR = "UnexpectedError"
    WRITE_FAILED = "WriteFailed"
    LOOKUP_FAILED = "LookupFailed"
    INVALID_PAYLOAD = "InvalidPayload"
    AMBIGUOUS_PROJECT = "AmbiguousProject"
    CONFIG_ERROR = "ConfigError"


class SyncError(Exception):
    """Base exception for bridge errors.

    Attributes:
        message: Human-readable description.
        code: Error code surfaced on results.
    """

    code = ErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationFailed(SyncError):
    """Credentials were missing or rejected by either system."""

    code = ErrorCode.AUTH_FAILED


class ProjectNotFound(SyncError):
    """The requested Project Online project does not exist."""

    code = ErrorCode.NOT_FOUND


class LookupFailed(SyncError):
    """A WIQL query could not be completed or its response was unreadable."""

    code = ErrorCode.LOOKUP_FAILED


class WorkItemWriteError(SyncError):
    """Azure DevOps rejected a work item write, or answered without an id."""

    code = ErrorCode.WRITE_FAILED

    def __init__(self, work_item_type: str, status_code: int, body: str) -> None:
        """Initialize write error.

        Args:
            work_item_type: Work item type that was being created.
            status_code: HTTP status of the response.
            body: Raw response body.
        """
        super().__init__(f"Failed to create {work_item_type}: HTTP {status_code}: {body}")
        self.work_item_type = work_item_type
        self.status_code = status_code
        self.body = body


class ConfigurationError(SyncError):
    """Required settings or credentials are not configured."""

    code = ErrorCode.CONFIG_ERROR
