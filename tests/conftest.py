"""Pytest configuration and shared fixtures.

This module provides:
- AWS credential mocking for moto
- Worker settings pointed at temporary directories
- A fake ffmpeg that writes a plausible HLS tree
- API Gateway events and a Lambda context for handler tests
- Sample playlists
"""

import base64
import json
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generator
from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

# Set dummy AWS credentials BEFORE importing any application code
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

# Powertools outside Lambda
os.environ["POWERTOOLS_TRACE_DISABLED"] = "true"
os.environ["POWERTOOLS_SERVICE_NAME"] = "transcode-worker"
os.environ["POWERTOOLS_METRICS_NAMESPACE"] = "HlsTranscoding"

# Set application environment variables
os.environ["ENVIRONMENT"] = "dev"
os.environ["SOURCE_BUCKET"] = "test-source-bucket"
os.environ["DESTINATION_BUCKET"] = "test-destination-bucket"
os.environ["BACKEND_API_URL"] = "https://backend.test/api/videos/transcoded"
os.environ["BACKEND_API_KEY"] = "test-backend-secret"
os.environ["LOG_LEVEL"] = "DEBUG"

SOURCE_BUCKET = "test-source-bucket"
DESTINATION_BUCKET = "test-destination-bucket"


MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:4
#EXT-X-MEDIA-SEQUENCE:0
#EXT-X-PLAYLIST-TYPE:VOD
#EXTINF:4.000000,
segment000.ts
#EXTINF:2.500000,
segment001.ts
#EXT-X-ENDLIST
"""


# =============================================================================
# AWS Fixtures
# =============================================================================


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def s3_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Mocked S3 client; cached worker clients are reset around it."""
    from src.shared.aws_clients import clear_client_cache

    with mock_aws():
        clear_client_cache()
        yield boto3.client("s3", region_name="us-east-1")
        clear_client_cache()


@pytest.fixture
def s3_buckets(s3_client: Any) -> dict[str, str]:
    """Create source and destination buckets."""
    s3_client.create_bucket(Bucket=SOURCE_BUCKET)
    s3_client.create_bucket(Bucket=DESTINATION_BUCKET)
    return {
        "source": SOURCE_BUCKET,
        "destination": DESTINATION_BUCKET,
    }


@pytest.fixture
def source_object(s3_client: Any, s3_buckets: dict[str, str]) -> dict[str, Any]:
    """Upload a small fake video as the job source."""
    body = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 4096
    s3_client.put_object(Bucket=s3_buckets["source"], Key="lecture1.mp4", Body=body)
    return {"bucket": s3_buckets["source"], "key": "lecture1.mp4", "body": body}


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """Directory under which job workspaces are created."""
    return tmp_path / "workspaces"


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch, workspace_root: Path) -> Generator[Any, None, None]:
    """Worker settings backed by the test environment."""
    from src.shared.config import clear_settings_cache, get_settings

    monkeypatch.setenv("WORKSPACE_ROOT", str(workspace_root))
    monkeypatch.setenv("SEGMENT_DURATION_SECONDS", "4")
    clear_settings_cache()

    yield get_settings()

    clear_settings_cache()


# =============================================================================
# Encoder Fixtures
# =============================================================================


def _write_fake_hls_tree(command: list[str]) -> None:
    """Write what ffmpeg would produce for a var_stream_map command."""
    output_root = Path(command[-1]).parent.parent
    stream_map = command[command.index("-var_stream_map") + 1]
    names = [group.split("name:", 1)[1] for group in stream_map.split()]

    for name in names:
        rendition_dir = output_root / name
        rendition_dir.mkdir(parents=True, exist_ok=True)
        (rendition_dir / "segment000.ts").write_bytes(b"\x47" * 188)
        (rendition_dir / "segment001.ts").write_bytes(b"\x47" * 188)
        (rendition_dir / "playlist.m3u8").write_text(MEDIA_PLAYLIST)


@pytest.fixture
def fake_ffmpeg() -> Generator[Any, None, None]:
    """Patch subprocess.run in the encoder with a successful fake ffmpeg."""

    def run(command: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        _write_fake_hls_tree(command)
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="frame=  240 fps=60.0 q=-1.0 Lsize=N/A")

    with patch("src.transcode_worker.encoder.subprocess.run", side_effect=run) as mock_run:
        yield mock_run


@pytest.fixture
def failing_ffmpeg() -> Generator[Any, None, None]:
    """Patch subprocess.run with an ffmpeg that exits 1 after a partial write."""

    def run(command: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        output_root = Path(command[-1]).parent.parent
        partial = output_root / "360p"
        partial.mkdir(parents=True, exist_ok=True)
        (partial / "segment000.ts").write_bytes(b"\x47" * 188)
        return subprocess.CompletedProcess(
            command, 1, stdout="", stderr="Error while decoding stream #0:0: Invalid data found"
        )

    with patch("src.transcode_worker.encoder.subprocess.run", side_effect=run) as mock_run:
        yield mock_run


# =============================================================================
# Control Plane Fixtures
# =============================================================================


@pytest.fixture
def mock_urlopen() -> Generator[Any, None, None]:
    """Patch urlopen with a control plane that accepts the report."""
    with patch("src.transcode_worker.notifier.urllib.request.urlopen") as mock_open:
        response = mock_open.return_value.__enter__.return_value
        response.status = 200
        response.read.return_value = b'{"success": true}'
        yield mock_open


# =============================================================================
# Lambda / API Gateway Fixtures
# =============================================================================


@dataclass
class FakeLambdaContext:
    function_name: str = "hls-transcode-worker"
    function_version: str = "$LATEST"
    memory_limit_in_mb: int = 2048
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:hls-transcode-worker"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"

    def get_remaining_time_in_millis(self) -> int:
        return 900_000


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    """Minimal Lambda context accepted by Powertools decorators."""
    return FakeLambdaContext()


@pytest.fixture
def api_event() -> Callable[..., dict[str, Any]]:
    """Factory for API Gateway REST proxy events."""

    def build(method: str, path: str, body: Any = None, raw_body: str | None = None) -> dict[str, Any]:
        if raw_body is None and body is not None:
            raw_body = json.dumps(body)

        return {
            "resource": path,
            "path": path,
            "httpMethod": method,
            "headers": {"Content-Type": "application/json"},
            "multiValueHeaders": {"Content-Type": ["application/json"]},
            "queryStringParameters": None,
            "multiValueQueryStringParameters": None,
            "pathParameters": None,
            "stageVariables": None,
            "requestContext": {
                "accountId": "123456789012",
                "resourceId": "abc123",
                "stage": "prod",
                "requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef",
                "identity": {"sourceIp": "127.0.0.1", "userAgent": "APIs-Google"},
                "resourcePath": path,
                "httpMethod": method,
                "path": f"/prod{path}",
            },
            "body": raw_body,
            "isBase64Encoded": False,
        }

    return build


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_media_playlist() -> str:
    """Finished VOD media playlist as written by ffmpeg."""
    return MEDIA_PLAYLIST


@pytest.fixture
def sample_master_playlist() -> str:
    """Master playlist for a 720p ceiling."""
    return """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360
360p/playlist.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=1400000,RESOLUTION=854x480
480p/playlist.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2800000,RESOLUTION=1280x720
720p/playlist.m3u8
"""


@pytest.fixture
def trigger_payload() -> dict[str, Any]:
    """Decoded payload for the lecture1 scenario."""
    return {"filename": "lecture1.mp4", "qualityCeiling": 720}


@pytest.fixture
def push_envelope() -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Wrap a payload the way the push subscription delivers it."""

    def wrap(payload: dict[str, Any]) -> dict[str, Any]:
        data = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
        return {"message": {"data": data}}

    return wrap
