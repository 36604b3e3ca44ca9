"""Recursive upload of the HLS tree to the destination bucket.

Publishing is split in two: enumerate (local path, key) pairs, then upload
them. Enumeration touches only the local filesystem and can be tested and
re-run independently of storage.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aws_lambda_powertools import Logger
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from ..shared.exceptions import PublishError
from ..shared.models import TranscodeJob
from .playlist import MASTER_PLAYLIST_NAME

logger = Logger(service="transcode-worker", child=True)

DESTINATION_ROOT = "transcoded"

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/MP2T",
    ".m2ts": "video/MP2T",
    ".m4s": "video/iso.segment",
    ".mp4": "video/mp4",
}


@dataclass(frozen=True)
class UploadItem:
    """One file of the tree and where it goes."""

    local_path: Path
    relative_path: str
    key: str
    content_type: str | None = None

    @property
    def is_master_playlist(self) -> bool:
        return self.relative_path == MASTER_PLAYLIST_NAME


def destination_prefix(job: TranscodeJob) -> str:
    """Key prefix for a job's output.

    Depends only on the upload's name, so a redelivered job overwrites the
    same keys.
    """
    return f"{DESTINATION_ROOT}/{job.output_name}"


def content_type_for(path: Path) -> str | None:
    """Content-Type hint for HLS assets."""
    return CONTENT_TYPES.get(path.suffix.lower())


def iter_upload_items(output_root: Path, prefix: str) -> Iterator[UploadItem]:
    """Enumerate every file under output_root, depth first.

    Entries are visited in name order so the enumeration is deterministic.
    Calling again restarts the walk.
    """
    root = Path(output_root)
    prefix = prefix.strip("/")
    yield from _walk(root, root, prefix)


def _walk(directory: Path, root: Path, prefix: str) -> Iterator[UploadItem]:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            yield from _walk(entry, root, prefix)
        elif entry.is_file():
            relative = entry.relative_to(root).as_posix().replace("\\", "/")
            yield UploadItem(
                local_path=entry,
                relative_path=relative,
                key=f"{prefix}/{relative}",
                content_type=content_type_for(entry),
            )


def publish_tree(s3_client: Any, bucket: str, items: Iterable[UploadItem]) -> list[str]:
    """Upload every item, overwriting existing objects.

    The root master playlist is uploaded after everything else so a reader
    never sees a master that points at missing renditions. There is no
    rollback: on failure the keys already written stay in place.

    Args:
        s3_client: boto3 S3 client
        bucket: Destination bucket
        items: Items from iter_upload_items

    Returns:
        Keys written, in upload order

    Raises:
        PublishError: On the first failed upload
    """
    ordered = sorted(items, key=lambda item: item.is_master_playlist)
    uploaded: list[str] = []

    for item in ordered:
        extra = {"ContentType": item.content_type} if item.content_type else None

        try:
            s3_client.upload_file(str(item.local_path), bucket, item.key, ExtraArgs=extra)
        except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
            raise PublishError(item.key, len(uploaded), original_error=e) from e

        uploaded.append(item.key)
        logger.debug("Uploaded object", extra={"bucket": bucket, "key": item.key})

    return uploaded
