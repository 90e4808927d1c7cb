"""Trigger command grammar.

``.`` / ``.1`` / ``.2`` run a primary synthesis at the default, 1 or 2 fps;
``..`` / ``..1`` / ``..2`` run the chained synthesis at the same rates.
Anything else is ordinary text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from intake.config import settings

TRIGGER_RE = re.compile(r"^(\.{1,2})([12])?$")


@dataclass(frozen=True)
class Trigger:
    """A parsed trigger: sampling rate and whether to chain the secondary profile."""

    fps: int
    chained: bool = False


def parse_trigger(text: str, default_fps: int | None = None) -> Trigger | None:
    """Return the Trigger for *text*, or None if it is not an exact trigger."""
    match = TRIGGER_RE.match(text.strip())
    if match is None:
        return None
    marker, rate = match.groups()
    fps = int(rate) if rate else (default_fps or settings.default_sample_fps)
    return Trigger(fps=fps, chained=len(marker) == 2)
