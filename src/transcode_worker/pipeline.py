"""Job pipeline: fetch, plan, encode, compose, publish, notify.

Stages run strictly in sequence inside a workspace scope. Any stage error
aborts the rest of the job; the workspace is removed regardless.
"""

from dataclasses import dataclass, field
from typing import Any

from aws_lambda_powertools import Logger, Tracer

from ..shared.config import Settings
from ..shared.models import JobStatus, TranscodeJob
from .encoder import encode_renditions, verify_master_playlist
from .fetcher import fetch_source
from .notifier import notify_completion, playback_path
from .playlist import write_master_playlist
from .publisher import destination_prefix, iter_upload_items, publish_tree
from .renditions import describe_plan, plan_renditions
from .workspace import job_workspace

logger = Logger(service="transcode-worker", child=True)
tracer = Tracer(service="transcode-worker")


@dataclass
class JobResult:
    """Summary of a completed job."""

    filename: str
    renditions: list[str]
    playback_url: str
    uploaded_keys: list[str] = field(default_factory=list)
    source_bytes: int = 0
    encode_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_key": self.filename,
            "renditions": self.renditions,
            "playback_url": self.playback_url,
            "uploaded_count": len(self.uploaded_keys),
            "source_bytes": self.source_bytes,
            "encode_seconds": self.encode_seconds,
        }


def run_job(job: TranscodeJob, settings: Settings, s3_client: Any) -> JobResult:
    """Run one transcode job end to end.

    Args:
        job: Validated job
        settings: Worker settings
        s3_client: boto3 S3 client for both source and destination

    Returns:
        JobResult describing what was published

    Raises:
        TranscodeJobError: Subclass identifying the failed stage
    """
    job = job.with_default_bucket(settings.source_bucket)

    with job_workspace(settings.workspace_root, job.output_name) as workspace:
        logger.info(
            "Workspace ready",
            extra={"source_key": job.filename, "workspace": str(workspace.path)},
        )

        input_path = workspace.input_path(job.source_suffix)
        with tracer.provider.in_subsegment("fetch_source"):
            source_bytes = fetch_source(
                s3_client,
                job,
                input_path,
                chunk_size=settings.download_chunk_size_bytes,
            )
        logger.info(
            "Source downloaded",
            extra={"bucket": job.source_bucket, "key": job.filename, "size_bytes": source_bytes},
        )

        # One plan value drives both the stream map and the master playlist
        plan = plan_renditions(job.quality_ceiling)
        logger.info(
            "Rendition plan ready",
            extra={"quality_ceiling": job.quality_ceiling, "plan": describe_plan(plan)},
        )

        with tracer.provider.in_subsegment("encode"):
            encode = encode_renditions(input_path, workspace.output_root, plan, settings)

        master_path = write_master_playlist(workspace.output_root, plan)
        verify_master_playlist(master_path, plan)

        prefix = destination_prefix(job)
        with tracer.provider.in_subsegment("publish"):
            uploaded = publish_tree(
                s3_client,
                settings.destination_bucket,
                iter_upload_items(workspace.output_root, prefix),
            )
        logger.info(
            "HLS tree published",
            extra={
                "bucket": settings.destination_bucket,
                "prefix": prefix,
                "uploaded_count": len(uploaded),
            },
        )

        playback_url = playback_path(job)
        with tracer.provider.in_subsegment("notify"):
            notify_completion(settings, playback_url, JobStatus.READY)

    return JobResult(
        filename=job.filename,
        renditions=[profile.name for profile in plan],
        playback_url=playback_url,
        uploaded_keys=uploaded,
        source_bytes=source_bytes,
        encode_seconds=encode.duration_seconds,
    )
