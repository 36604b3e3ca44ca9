"""HLS rendition ladder and planning.

The catalog is a fixed ladder ordered from lowest to highest quality. A job's
plan is the prefix of that ladder at or below the requested ceiling, so
renditions are never upscaled beyond what the uploader asked for.

The position of a profile in the plan is its stream index. The encoder's
stream map and the master playlist both iterate the same plan tuple, which is
what keeps a BANDWIDTH entry pointing at the matching rendition directory.
"""

from collections.abc import Sequence

from ..shared.exceptions import RenditionPlanError
from ..shared.models import RenditionProfile

RenditionPlan = tuple[RenditionProfile, ...]


RENDITION_CATALOG: RenditionPlan = (
    # 360p - very poor connection
    RenditionProfile(label=360, width=640, height=360, video_bitrate_kbps=800),
    # 480p - mobile
    RenditionProfile(label=480, width=854, height=480, video_bitrate_kbps=1400),
    # 720p - tablet/laptop
    RenditionProfile(label=720, width=1280, height=720, video_bitrate_kbps=2800),
    # 1080p - desktop/TV
    RenditionProfile(label=1080, width=1920, height=1080, video_bitrate_kbps=5000),
)


def plan_renditions(
    quality_ceiling: int,
    catalog: Sequence[RenditionProfile] = RENDITION_CATALOG,
) -> RenditionPlan:
    """Select every catalog profile whose label does not exceed the ceiling.

    Args:
        quality_ceiling: Highest label to produce (e.g. 720)
        catalog: Ladder ordered by ascending label

    Returns:
        Non-empty tuple of profiles in ascending order

    Raises:
        RenditionPlanError: If the ceiling is below the lowest catalog label

    Example:
        >>> [p.label for p in plan_renditions(720)]
        [360, 480, 720]
    """
    plan = tuple(profile for profile in catalog if profile.label <= quality_ceiling)

    if not plan:
        lowest = catalog[0].label if catalog else None
        raise RenditionPlanError(quality_ceiling, lowest)

    return plan


def describe_plan(plan: RenditionPlan) -> list[dict[str, object]]:
    """Summarize a plan for structured logs and metrics metadata."""
    return [
        {
            "stream_index": index,
            "name": profile.name,
            "resolution": profile.resolution,
            "bitrate_kbps": profile.video_bitrate_kbps,
        }
        for index, profile in enumerate(plan)
    ]
