"""Tests for MediaResolver: downloads, video expansion and ordering."""

import asyncio
from unittest.mock import AsyncMock

import httpx

from intake.media.frames import FrameSamplingError
from intake.media.resolver import MediaResolver
from intake.models import BufferedItem, ContentPart, ItemKind

FILES = {
    "https://files.example/slow.jpg": (b"slow-image", 0.05),
    "https://files.example/fast.pdf": (b"fast-pdf", 0.0),
    "https://files.example/clip.mp4": (b"video-bytes", 0.01),
    "https://files.example/memo.ogg": (b"voice", 0.0),
}


def _transport() -> httpx.MockTransport:
    async def handler(request: httpx.Request) -> httpx.Response:
        entry = FILES.get(str(request.url))
        if entry is None:
            return httpx.Response(404)
        body, delay = entry
        await asyncio.sleep(delay)
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler)


def _sampler(frames: list[bytes] | None = None, error: Exception | None = None):
    sampler = AsyncMock()
    if error is not None:
        sampler.sample.side_effect = error
    else:
        sampler.sample.return_value = frames or []
    return sampler


def _media(kind: ItemKind, name: str, mime: str, caption: str = "") -> BufferedItem:
    return BufferedItem.media(kind, f"https://files.example/{name}", mime, caption)


async def test_parts_follow_submission_order_not_completion_order() -> None:
    resolver = MediaResolver(sampler=_sampler(), transport=_transport())
    items = [
        _media(ItemKind.IMAGE, "slow.jpg", "image/jpeg"),
        _media(ItemKind.PDF, "fast.pdf", "application/pdf"),
    ]

    content = await resolver.resolve(items)

    assert content.parts == [
        ContentPart(data=b"slow-image", mime_type="image/jpeg"),
        ContentPart(data=b"fast-pdf", mime_type="application/pdf"),
    ]


async def test_notes_and_captions_interleave_in_order() -> None:
    resolver = MediaResolver(sampler=_sampler(), transport=_transport())
    items = [
        BufferedItem.note("history note"),
        _media(ItemKind.IMAGE, "slow.jpg", "image/jpeg", "USG 2023"),
        BufferedItem.note("second note"),
        _media(ItemKind.AUDIO, "memo.ogg", "audio/ogg"),
    ]

    content = await resolver.resolve(items)

    assert content.notes == ["history note", "[Caption]: USG 2023", "second note"]
    assert [p.mime_type for p in content.parts] == ["image/jpeg", "audio/ogg"]


async def test_video_expands_into_jpeg_frames() -> None:
    sampler = _sampler(frames=[b"f1", b"f2", b"f3"])
    resolver = MediaResolver(sampler=sampler, transport=_transport())
    items = [_media(ItemKind.VIDEO, "clip.mp4", "video/mp4", "echo loop")]

    content = await resolver.resolve(items, fps=2)

    sampler.sample.assert_awaited_once_with(b"video-bytes", 2)
    assert content.parts == [
        ContentPart(data=b"f1", mime_type="image/jpeg"),
        ContentPart(data=b"f2", mime_type="image/jpeg"),
        ContentPart(data=b"f3", mime_type="image/jpeg"),
    ]
    assert content.notes == ["[Caption]: [Video Frame] echo loop"]


async def test_failed_download_is_dropped() -> None:
    resolver = MediaResolver(sampler=_sampler(), transport=_transport())
    items = [
        _media(ItemKind.IMAGE, "missing.jpg", "image/jpeg", "lost caption"),
        _media(ItemKind.PDF, "fast.pdf", "application/pdf"),
    ]

    content = await resolver.resolve(items)

    assert content.parts == [ContentPart(data=b"fast-pdf", mime_type="application/pdf")]
    assert content.notes == []


async def test_sampling_failure_drops_only_the_video() -> None:
    sampler = _sampler(error=FrameSamplingError("ffmpeg exited with 1"))
    resolver = MediaResolver(sampler=sampler, transport=_transport())
    items = [
        _media(ItemKind.VIDEO, "clip.mp4", "video/mp4", "clip caption"),
        BufferedItem.note("kept"),
    ]

    content = await resolver.resolve(items)

    assert content.parts == []
    assert content.notes == ["kept"]


async def test_nothing_resolvable_gives_empty_content() -> None:
    resolver = MediaResolver(sampler=_sampler(), transport=_transport())
    content = await resolver.resolve([_media(ItemKind.IMAGE, "gone.jpg", "image/jpeg")])
    assert content.parts == []
    assert content.notes == []


async def test_empty_input() -> None:
    resolver = MediaResolver(sampler=_sampler(), transport=_transport())
    content = await resolver.resolve([])
    assert content.parts == []
    assert content.notes == []
