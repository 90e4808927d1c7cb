"""Media resolution: downloads and video frame sampling."""

from intake.media.frames import FrameSampler, FrameSamplingError
from intake.media.resolver import MediaResolver, ResolvedContent

__all__ = [
    "FrameSampler",
    "FrameSamplingError",
    "MediaResolver",
    "ResolvedContent",
]
