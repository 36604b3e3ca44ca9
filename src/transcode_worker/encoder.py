"""Single-pass multi-rendition encode with FFmpeg.

All renditions come out of one ffmpeg process: the input is decoded once and
fanned out to one encoder per plan entry. The var_stream_map directive ties
each output stream index to its rendition directory, and it is built from the
same plan tuple the master playlist is rendered from.
"""

import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

from aws_lambda_powertools import Logger

from ..shared.config import Settings
from ..shared.exceptions import EncodeError
from .playlist import MEDIA_PLAYLIST_NAME, inspect_master_playlist, inspect_media_playlist
from .renditions import RenditionPlan

logger = Logger(service="transcode-worker", child=True)

# Shared codec settings for every rendition
VIDEO_CODEC_ARGS = ["-c:v", "libx264", "-profile:v", "main", "-crf", "20", "-preset", "medium"]
AUDIO_CODEC_ARGS = ["-c:a", "aac", "-ar", "48000", "-b:a", "128k"]

SEGMENT_FILENAME = "segment%03d.ts"

# Keep log records bounded; ffmpeg progress output can be very long
STDERR_TAIL_CHARS = 4000


@dataclass
class EncodeResult:
    """Outcome of one encoder process."""

    exit_code: int
    stdout: str
    stderr: str
    command: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def stderr_tail(self) -> str:
        return self.stderr[-STDERR_TAIL_CHARS:]


def build_stream_map(plan: RenditionPlan) -> str:
    """Build the var_stream_map value, one group per plan index.

    Example:
        >>> build_stream_map(plan_renditions(480))
        'v:0,a:0,name:360p v:1,a:1,name:480p'
    """
    return " ".join(
        f"v:{index},a:{index},name:{profile.name}" for index, profile in enumerate(plan)
    )


def build_ffmpeg_command(
    input_path: Path,
    output_root: Path,
    plan: RenditionPlan,
    ffmpeg_path: str = "ffmpeg",
    segment_duration: int = 4,
) -> list[str]:
    """Build the argument list for one encode producing every rendition.

    Args:
        input_path: Downloaded source file
        output_root: Root of the HLS tree; renditions go in <root>/<name>/
        plan: Renditions in stream index order
        ffmpeg_path: ffmpeg binary
        segment_duration: Target segment length in seconds

    Returns:
        Argument list suitable for subprocess
    """
    command = [ffmpeg_path, "-hide_banner", "-y", "-i", str(input_path)]

    # Same input video and audio feed every output stream
    for _ in plan:
        command.extend(["-map", "0:v:0", "-map", "0:a:0"])

    for index, profile in enumerate(plan):
        command.extend([
            f"-filter:v:{index}", f"scale={profile.width}:{profile.height}",
            f"-b:v:{index}", f"{profile.video_bitrate_kbps}k",
            f"-maxrate:v:{index}", f"{profile.video_bitrate_kbps}k",
            f"-bufsize:v:{index}", f"{profile.buffer_size_kbps}k",
        ])

    command.extend(VIDEO_CODEC_ARGS)
    command.extend(AUDIO_CODEC_ARGS)
    command.extend([
        "-f", "hls",
        "-hls_time", str(segment_duration),
        "-hls_playlist_type", "vod",
        "-hls_segment_filename", str(output_root / "%v" / SEGMENT_FILENAME),
        "-var_stream_map", build_stream_map(plan),
        str(output_root / "%v" / MEDIA_PLAYLIST_NAME),
    ])

    return command


def run_encode(command: list[str], timeout: float | None = None) -> EncodeResult:
    """Run the encoder and wait for it to exit.

    Output is captured for logging only; the exit code is the sole success
    signal.

    Raises:
        EncodeError: If the binary is missing or the timeout expires
    """
    started = time.monotonic()

    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise EncodeError(
            f"Encoder binary not found: {command[0]}",
            details={"binary": command[0]},
        ) from e
    except subprocess.TimeoutExpired as e:
        raise EncodeError(
            f"Encoder timed out after {timeout}s",
            details={"timeout_seconds": timeout},
        ) from e

    return EncodeResult(
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        command=command,
        duration_seconds=round(time.monotonic() - started, 3),
    )


def encode_renditions(
    input_path: Path,
    output_root: Path,
    plan: RenditionPlan,
    settings: Settings,
) -> EncodeResult:
    """Encode every planned rendition and verify the produced playlists.

    Partial output from a failed run is left in place for workspace teardown;
    it is never published.

    Raises:
        EncodeError: On non-zero exit or incomplete rendition output
    """
    for profile in plan:
        (output_root / profile.name).mkdir(parents=True, exist_ok=True)

    command = build_ffmpeg_command(
        input_path=input_path,
        output_root=output_root,
        plan=plan,
        ffmpeg_path=settings.ffmpeg_path,
        segment_duration=settings.segment_duration_seconds,
    )

    logger.info(
        "Starting encoder",
        extra={
            "renditions": [p.name for p in plan],
            "stream_map": build_stream_map(plan),
        },
    )
    logger.debug("Encoder command", extra={"command": command})

    result = run_encode(command, timeout=settings.encode_timeout_seconds)

    if result.stdout:
        logger.debug("ffmpeg stdout", extra={"output": result.stdout[-STDERR_TAIL_CHARS:]})
    if result.stderr:
        logger.debug("ffmpeg stderr", extra={"output": result.stderr_tail})

    if not result.succeeded:
        raise EncodeError(
            f"FFmpeg exited with code {result.exit_code}",
            exit_code=result.exit_code,
            details={"stderr_tail": result.stderr_tail},
        )

    verify_renditions(output_root, plan)

    logger.info(
        "Encoder finished",
        extra={"duration_seconds": result.duration_seconds},
    )
    return result


def verify_renditions(output_root: Path, plan: RenditionPlan) -> None:
    """Ensure each rendition has a complete VOD playlist.

    Raises:
        EncodeError: Naming the first rendition with a missing or unfinished playlist
    """
    for profile in plan:
        playlist = output_root / profile.name / MEDIA_PLAYLIST_NAME

        if not playlist.is_file():
            raise EncodeError(
                f"Rendition {profile.name} produced no playlist",
                exit_code=0,
                details={"rendition": profile.name, "path": str(playlist)},
            )

        report = inspect_media_playlist(playlist.read_text(encoding="utf-8"))
        if not report["passed"]:
            raise EncodeError(
                f"Rendition {profile.name} playlist is incomplete",
                exit_code=0,
                details={"rendition": profile.name, "problems": report["problems"]},
            )


def verify_master_playlist(master_path: Path, plan: RenditionPlan) -> None:
    """Ensure the master playlist lists every verified rendition in plan order.

    Raises:
        EncodeError: If the master is missing, lists other variants, or points
            at a rendition playlist that is not on disk
    """
    if not master_path.is_file():
        raise EncodeError(
            "Master playlist was not written",
            exit_code=0,
            details={"path": str(master_path)},
        )

    report = inspect_master_playlist(master_path.read_text(encoding="utf-8"), plan)
    if not report["passed"]:
        raise EncodeError(
            "Master playlist does not match the rendition plan",
            exit_code=0,
            details={"problems": report["problems"]},
        )

    for variant in report["variants"]:
        if not (master_path.parent / variant["uri"]).is_file():
            raise EncodeError(
                f"Master playlist references missing {variant['uri']}",
                exit_code=0,
                details={"uri": variant["uri"]},
            )
