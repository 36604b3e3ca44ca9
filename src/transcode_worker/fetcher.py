"""Source object download."""

from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..shared.exceptions import SourceFetchError
from ..shared.models import TranscodeJob

NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


def fetch_source(
    s3_client: Any,
    job: TranscodeJob,
    destination: Path,
    chunk_size: int = 8 * 1024 * 1024,
) -> int:
    """Stream the job's source object to a local file.

    No retry happens here; a failed download fails the job and the whole job
    is re-run on redelivery.

    Args:
        s3_client: boto3 S3 client
        job: Job naming the source bucket and key
        destination: Local file to write
        chunk_size: Bytes per read from the response body

    Returns:
        Number of bytes written

    Raises:
        SourceFetchError: On any storage or local I/O failure
    """
    bucket = job.source_bucket
    key = job.filename
    details = {"bucket": bucket, "key": key}

    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")
        reason = "not_found" if error_code in NOT_FOUND_CODES else error_code or "client_error"
        raise SourceFetchError(
            f"Could not get s3://{bucket}/{key}: {error_code or e}",
            {**details, "reason": reason},
        ) from e
    except BotoCoreError as e:
        raise SourceFetchError(
            f"Could not get s3://{bucket}/{key}: {e}",
            {**details, "reason": "transport"},
        ) from e

    body = response["Body"]
    written = 0

    try:
        with open(destination, "wb") as out:
            for chunk in body.iter_chunks(chunk_size=chunk_size):
                out.write(chunk)
                written += len(chunk)
    except (BotoCoreError, OSError) as e:
        raise SourceFetchError(
            f"Download of s3://{bucket}/{key} interrupted: {e}",
            {**details, "reason": "stream", "bytes_written": written},
        ) from e
    finally:
        body.close()

    return written
