"""Shared utilities for the HLS transcode worker."""

from .config import Settings, get_settings
from .exceptions import (
    TranscodeJobError,
    InvalidTriggerError,
    WorkspaceError,
    RenditionPlanError,
    SourceFetchError,
    EncodeError,
    PublishError,
    CompletionNotifyError,
)
from .models import (
    JobStatus,
    TranscodeJob,
    RenditionProfile,
    CompletionReport,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "TranscodeJobError",
    "InvalidTriggerError",
    "WorkspaceError",
    "RenditionPlanError",
    "SourceFetchError",
    "EncodeError",
    "PublishError",
    "CompletionNotifyError",
    # Models
    "JobStatus",
    "TranscodeJob",
    "RenditionProfile",
    "CompletionReport",
]
