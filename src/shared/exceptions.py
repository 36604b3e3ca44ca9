"""Exception hierarchy for the transcode worker.

Every job failure is raised as a TranscodeJobError subclass so the entry point
can log a structured record and map it onto an HTTP status.

Exception hierarchy:
    TranscodeJobError (base)
    ├── InvalidTriggerError      (400, no workspace created)
    ├── WorkspaceError
    ├── RenditionPlanError
    ├── SourceFetchError
    ├── EncodeError
    ├── PublishError
    └── CompletionNotifyError
"""

from typing import Any


class TranscodeJobError(Exception):
    """Base exception for all job errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for metrics/filtering
        details: Additional context as key-value pairs
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for structured logging.

        Uses 'error_message' instead of 'message' since the logging module
        reserves 'message' on log records.
        """
        return {
            "error_code": self.error_code,
            "error_message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.error_code!r}, {self.message!r})"


class InvalidTriggerError(TranscodeJobError):
    """Raised when the push envelope or its payload cannot be turned into a job.

    This covers:
    - Missing message envelope or data field
    - Invalid base64 or JSON
    - Missing filename or quality ceiling
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "INVALID_TRIGGER", details)


class WorkspaceError(TranscodeJobError):
    """Raised when the job workspace cannot be created."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "WORKSPACE_ERROR", details)


class RenditionPlanError(TranscodeJobError):
    """Raised when no catalog rendition fits under the quality ceiling."""

    def __init__(self, quality_ceiling: int, lowest_label: int | None) -> None:
        details = {
            "quality_ceiling": quality_ceiling,
            "lowest_catalog_label": lowest_label,
        }
        message = f"No suitable transcoding profiles for source quality {quality_ceiling}p"
        super().__init__(message, "RENDITION_PLAN_ERROR", details)


class SourceFetchError(TranscodeJobError):
    """Raised when the source object cannot be downloaded.

    This covers:
    - Object or bucket not found
    - Permission failures
    - Network failures mid-stream
    - Local write failures
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "SOURCE_FETCH_ERROR", details)


class EncodeError(TranscodeJobError):
    """Raised when the encoder process fails or leaves incomplete output.

    Attributes:
        exit_code: Encoder exit status, None if the process never ran
    """

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        error_details = details or {}
        error_details["exit_code"] = exit_code
        super().__init__(message, "ENCODE_ERROR", error_details)
        self.exit_code = exit_code


class PublishError(TranscodeJobError):
    """Raised when an upload to the destination bucket fails.

    The destination prefix may be partially populated when this is raised.
    """

    def __init__(
        self,
        key: str,
        uploaded_count: int,
        original_error: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {
            "failed_key": key,
            "uploaded_count": uploaded_count,
        }
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(f"Upload failed for {key}", "PUBLISH_ERROR", details)
        self.original_error = original_error


class CompletionNotifyError(TranscodeJobError):
    """Raised when the control plane rejects or cannot receive the report."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "COMPLETION_NOTIFY_ERROR", details)
