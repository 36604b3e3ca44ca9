"""HLS playlist composition and inspection.

The encoder writes one media playlist per rendition; this module writes the
master playlist that ties them together and reads playlists back for
verification before anything is published.
"""

import re
from pathlib import Path
from typing import Any

from .renditions import RenditionPlan

MASTER_PLAYLIST_NAME = "master.m3u8"
MEDIA_PLAYLIST_NAME = "playlist.m3u8"
HLS_VERSION = 3


def media_playlist_uri(profile_name: str) -> str:
    """Sub-playlist path relative to the master playlist."""
    return f"{profile_name}/{MEDIA_PLAYLIST_NAME}"


def render_master_playlist(plan: RenditionPlan) -> str:
    """Render the multivariant playlist for a plan.

    Entries follow plan order, which is also the encoder's stream order.

    Example:
        >>> print(render_master_playlist(plan_renditions(360)))
        #EXTM3U
        #EXT-X-VERSION:3
        #EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360
        360p/playlist.m3u8
    """
    lines = ["#EXTM3U", f"#EXT-X-VERSION:{HLS_VERSION}"]

    for profile in plan:
        lines.append(
            f"#EXT-X-STREAM-INF:BANDWIDTH={profile.bandwidth},RESOLUTION={profile.resolution}"
        )
        lines.append(media_playlist_uri(profile.name))

    return "\n".join(lines) + "\n"


def write_master_playlist(output_root: Path, plan: RenditionPlan) -> Path:
    """Write master.m3u8 at the root of the HLS tree."""
    path = output_root / MASTER_PLAYLIST_NAME
    path.write_text(render_master_playlist(plan), encoding="utf-8")
    return path


def parse_master_playlist(content: str) -> list[dict[str, Any]]:
    """Parse EXT-X-STREAM-INF entries, in file order."""
    variants = []
    lines = [line.strip() for line in content.strip().split("\n")]

    for i, line in enumerate(lines):
        if line.startswith("#EXT-X-STREAM-INF:"):
            attrs = _parse_attributes(line.split(":", 1)[1])
            uri = lines[i + 1] if i + 1 < len(lines) else ""

            variants.append({
                "bandwidth": int(attrs.get("BANDWIDTH", 0)),
                "resolution": attrs.get("RESOLUTION", ""),
                "uri": uri,
            })

    return variants


def inspect_master_playlist(content: str, plan: RenditionPlan) -> dict[str, Any]:
    """Check that a master playlist lists exactly the plan, in plan order.

    Returns:
        Dictionary with 'passed', 'problems' and the parsed 'variants'
    """
    variants = parse_master_playlist(content)
    problems = []

    if not content.startswith("#EXTM3U"):
        problems.append("missing #EXTM3U header")

    expected = [
        (profile.bandwidth, profile.resolution, media_playlist_uri(profile.name))
        for profile in plan
    ]
    listed = [(v["bandwidth"], v["resolution"], v["uri"]) for v in variants]
    if listed != expected:
        problems.append(f"variants {listed} do not match plan {expected}")

    return {
        "passed": not problems,
        "problems": problems,
        "variants": variants,
    }


def inspect_media_playlist(content: str) -> dict[str, Any]:
    """Check that a rendition playlist is a finished VOD segment list.

    Returns:
        Dictionary with 'passed', 'problems' and the parsed segment summary
    """
    lines = [line.strip() for line in content.strip().split("\n")]
    problems = []

    if not lines or not lines[0].startswith("#EXTM3U"):
        problems.append("missing #EXTM3U header")

    target_duration = None
    for line in lines:
        if line.startswith("#EXT-X-TARGETDURATION:"):
            try:
                target_duration = int(line.split(":", 1)[1])
            except ValueError:
                problems.append("invalid #EXT-X-TARGETDURATION")
            break
    else:
        problems.append("missing #EXT-X-TARGETDURATION")

    if "#EXT-X-PLAYLIST-TYPE:VOD" not in lines:
        problems.append("playlist type is not VOD")

    segments = _parse_extinf(lines)
    if not segments:
        problems.append("no media segments")

    if "#EXT-X-ENDLIST" not in lines:
        problems.append("missing #EXT-X-ENDLIST")

    return {
        "passed": not problems,
        "problems": problems,
        "target_duration": target_duration,
        "segment_count": len(segments),
        "total_duration": sum(s["duration"] for s in segments),
    }


def _parse_extinf(lines: list[str]) -> list[dict[str, Any]]:
    segments = []

    for i, line in enumerate(lines):
        if line.startswith("#EXTINF:"):
            # Format: #EXTINF:4.000000,
            duration_str = line.split(":", 1)[1].split(",", 1)[0]
            try:
                duration = float(duration_str)
            except ValueError:
                duration = 0.0

            uri = lines[i + 1] if i + 1 < len(lines) else ""
            segments.append({"duration": duration, "uri": uri})

    return segments


def _parse_attributes(attr_string: str) -> dict[str, str]:
    """Parse an HLS attribute list, handling quoted values."""
    attrs = {}

    for match in re.finditer(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)', attr_string):
        attrs[match.group(1)] = match.group(2).strip('"')

    return attrs
