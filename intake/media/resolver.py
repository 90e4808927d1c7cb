"""Turn buffered items into inline model content and text notes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from intake.config import settings
from intake.media.frames import FrameSampler
from intake.models import ContentPart, ItemKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from intake.models import BufferedItem

logger = logging.getLogger(__name__)

FRAME_MIME_TYPE = "image/jpeg"


@dataclass
class ResolvedContent:
    """Inline parts and text notes, both in submission order."""

    parts: list[ContentPart] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def extend(self, other: ResolvedContent) -> None:
        self.parts.extend(other.parts)
        self.notes.extend(other.notes)


class MediaResolver:
    """Downloads binaries and expands videos into frames.

    Items are fetched concurrently, but the result always follows the order
    the items were submitted in.  A failure on any single item is logged and
    that item is dropped.
    """

    def __init__(
        self,
        sampler: FrameSampler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self.sampler = sampler or FrameSampler()
        self._transport = transport
        self._timeout = timeout or settings.download_timeout_seconds

    async def resolve(self, items: Sequence[BufferedItem], fps: int | None = None) -> ResolvedContent:
        """Resolve every item; unresolvable items are skipped."""
        result = ResolvedContent()
        if not items:
            return result

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True
        ) as client:
            resolved = await asyncio.gather(
                *(self._resolve_one(client, item, fps) for item in items)
            )

        for content in resolved:
            if content is not None:
                result.extend(content)

        logger.info(
            "Resolved %d/%d items into %d parts and %d notes",
            sum(1 for c in resolved if c is not None),
            len(items),
            len(result.parts),
            len(result.notes),
        )
        return result

    async def _resolve_one(
        self, client: httpx.AsyncClient, item: BufferedItem, fps: int | None
    ) -> ResolvedContent | None:
        if item.kind == ItemKind.TEXT:
            return ResolvedContent(notes=[item.text or ""])

        try:
            data = await self._download(client, item.locator or "")
            if item.kind == ItemKind.VIDEO:
                frames = await self.sampler.sample(data, fps)
                parts = [ContentPart(data=frame, mime_type=FRAME_MIME_TYPE) for frame in frames]
                caption = f"[Video Frame] {item.caption}" if item.caption else ""
            else:
                parts = [ContentPart(data=data, mime_type=item.mime_type or "")]
                caption = item.caption
        except Exception:
            logger.exception("Dropping %s item that could not be resolved", item.kind)
            return None

        notes = [f"[Caption]: {caption}"] if caption else []
        return ResolvedContent(parts=parts, notes=notes)

    async def _download(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        response.raise_for_status()
        return response.content
