"""Pydantic models for data validation and serialization.

This module defines the core data structures used throughout the worker:
- The transcode job decoded from a trigger payload
- Rendition profiles for the HLS ladder
- The completion report sent to the control plane

All models use Pydantic v2 for validation and serialization.
"""

from enum import Enum
from pathlib import PurePosixPath
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    """Status values understood by the control plane."""

    READY = "ready"
    FAILED = "failed"


class TranscodeJob(BaseModel):
    """A single transcode request decoded from a trigger message.

    Upstream publishers are not consistent about key names, so the common
    spellings are accepted for each field.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_bucket: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sourceBucket", "bucket", "source_bucket"),
        description="Bucket holding the raw upload (defaults to the configured source bucket)",
    )
    filename: str = Field(
        min_length=1,
        validation_alias=AliasChoices("filename", "filePath"),
        description="Object key of the raw upload",
    )
    quality_ceiling: Annotated[int, Field(gt=0)] = Field(
        validation_alias=AliasChoices("qualityCeiling", "quality", "quality_ceiling"),
        description="Highest rendition label to produce (e.g. 720)",
    )

    @field_validator("filename", mode="before")
    @classmethod
    def strip_filename(cls, v: Any) -> Any:
        """Reject whitespace-only names."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("quality_ceiling", mode="before")
    @classmethod
    def parse_quality_label(cls, v: Any) -> Any:
        """Accept labels like '1080p' as well as plain integers."""
        if isinstance(v, bool):
            raise ValueError("quality must be a number, not a boolean")
        if isinstance(v, str):
            v = v.strip().lower().removesuffix("p")
        return v

    @property
    def output_name(self) -> str:
        """Base name of the upload without directory or extension."""
        return PurePosixPath(self.filename).stem

    @property
    def source_suffix(self) -> str:
        """Extension of the upload (e.g. '.mp4'), empty if none."""
        return PurePosixPath(self.filename).suffix

    def with_default_bucket(self, bucket: str) -> "TranscodeJob":
        """Return a copy with the source bucket filled in when absent."""
        if self.source_bucket:
            return self
        return self.model_copy(update={"source_bucket": bucket})


class RenditionProfile(BaseModel):
    """One rung of the HLS ladder.

    Each profile is a fixed resolution/bitrate pair encoded with the same
    codec settings as every other rung.
    """

    model_config = ConfigDict(frozen=True)

    label: Annotated[int, Field(gt=0)] = Field(
        description="Quality label in lines (e.g. 720)",
    )
    width: Annotated[int, Field(gt=0)] = Field(
        description="Output width in pixels",
    )
    height: Annotated[int, Field(gt=0)] = Field(
        description="Output height in pixels",
    )
    video_bitrate_kbps: Annotated[int, Field(gt=0, le=50000)] = Field(
        description="Average (and maximum) video bitrate in kbps",
    )

    @property
    def resolution(self) -> str:
        """Return resolution string (e.g., '1280x720')."""
        return f"{self.width}x{self.height}"

    @property
    def buffer_size_kbps(self) -> int:
        """Rate control buffer, twice the video bitrate."""
        return self.video_bitrate_kbps * 2

    @property
    def bandwidth(self) -> int:
        """Advertised bandwidth in bits per second."""
        return self.video_bitrate_kbps * 1000

    @property
    def name(self) -> str:
        """Rendition directory name (e.g., '720p')."""
        return f"{self.label}p"


class CompletionReport(BaseModel):
    """Body of the completion callback."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    playback_url: str = Field(
        alias="playbackUrl",
        description="Destination-relative path of the master playlist",
    )
    status: JobStatus = Field(
        default=JobStatus.READY,
        description="Outcome reported to the control plane",
    )
