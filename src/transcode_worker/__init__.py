"""HLS transcode worker.

This module handles one push-delivered job at a time:
- Push envelope decoding
- Rendition planning
- Single-pass FFmpeg encode to HLS
- Master playlist composition
- Recursive publish to object storage
- Completion callback to the control plane
"""

from .renditions import RENDITION_CATALOG, plan_renditions
from .pipeline import JobResult, run_job
from .trigger import decode_push_message

__all__ = [
    "RENDITION_CATALOG",
    "plan_renditions",
    "JobResult",
    "run_job",
    "decode_push_message",
]
