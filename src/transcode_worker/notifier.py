"""Completion callback to the control plane.

The callback is the only readiness signal for a published prefix: the
control plane flips the video to playable when it receives it. A failed
callback fails the job so that redelivery runs everything again.
"""

import json
import ssl
import urllib.request
from typing import Any
from urllib.error import HTTPError, URLError

from aws_lambda_powertools import Logger

from ..shared.config import Settings
from ..shared.exceptions import CompletionNotifyError
from ..shared.models import CompletionReport, JobStatus, TranscodeJob
from .playlist import MASTER_PLAYLIST_NAME
from .publisher import destination_prefix

logger = Logger(service="transcode-worker", child=True)

USER_AGENT = "HlsTranscodeWorker/1.0"


def playback_path(job: TranscodeJob) -> str:
    """Destination-relative path of the master playlist.

    Example:
        '/transcoded/lecture1/master.m3u8'
    """
    return f"/{destination_prefix(job)}/{MASTER_PLAYLIST_NAME}"


def notify_completion(
    settings: Settings,
    playback_url: str,
    status: JobStatus = JobStatus.READY,
) -> dict[str, Any]:
    """POST the completion report with the bearer secret.

    Args:
        settings: Worker settings holding the callback URL and secret
        playback_url: Playback path of the master playlist
        status: Reported outcome

    Returns:
        Dictionary with the response status code and a truncated body

    Raises:
        CompletionNotifyError: On missing configuration, non-2xx response or transport failure
    """
    if not settings.backend_api_url:
        raise CompletionNotifyError("Completion callback URL is not configured")

    report = CompletionReport(playback_url=playback_url, status=status)
    payload = json.dumps(report.model_dump(mode="json", by_alias=True)).encode("utf-8")

    headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "Authorization": f"Bearer {settings.backend_api_key}",
    }

    request = urllib.request.Request(
        settings.backend_api_url,
        data=payload,
        headers=headers,
        method="POST",
    )

    try:
        ssl_context = ssl.create_default_context()

        with urllib.request.urlopen(
            request,
            context=ssl_context,
            timeout=settings.callback_timeout_seconds,
        ) as response:
            status_code = response.status
            response_body = response.read().decode("utf-8", errors="replace")[:500]

    except HTTPError as e:
        raise CompletionNotifyError(
            f"Control plane rejected completion report: HTTP {e.code}",
            {"status_code": e.code, "reason": str(e.reason), "playback_url": playback_url},
        ) from e

    except URLError as e:
        raise CompletionNotifyError(
            f"Control plane unreachable: {e.reason}",
            {"reason": str(e.reason), "playback_url": playback_url},
        ) from e

    except (TimeoutError, OSError) as e:
        raise CompletionNotifyError(
            f"Completion report failed: {e}",
            {"reason": str(e), "playback_url": playback_url},
        ) from e

    if not 200 <= status_code < 300:
        raise CompletionNotifyError(
            f"Control plane returned HTTP {status_code}",
            {"status_code": status_code, "playback_url": playback_url},
        )

    logger.info(
        "Completion report accepted",
        extra={"playback_url": playback_url, "status_code": status_code},
    )

    return {"status_code": status_code, "response": response_body}
