"""Outbound message helpers: chunking and Markdown with a plain-text fallback."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram.error import BadRequest

from intake.config import settings

if TYPE_CHECKING:
    from telegram import Message

logger = logging.getLogger(__name__)


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def _fit(text: str, limit: int) -> int:
    """Index of the longest prefix of *text* within *limit* UTF-16 units (at least 1)."""
    units = 0
    for i, ch in enumerate(text):
        units += 2 if ord(ch) > 0xFFFF else 1
        if units > limit:
            return max(i, 1)
    return len(text)


def split_message(text: str, limit: int | None = None) -> list[str]:
    """Split *text* into ordered chunks of at most *limit* UTF-16 units.

    Telegram measures message length in UTF-16 code units, so characters
    outside the BMP count twice. Breaks at the last newline inside the
    window when there is one, otherwise cuts hard at the limit.
    """
    limit = limit or settings.max_message_length
    chunks: list[str] = []
    remaining = text
    while _utf16_len(remaining) > limit:
        end = _fit(remaining, limit)
        cut = remaining.rfind("\n", 0, end)
        if cut <= 0:
            chunks.append(remaining[:end])
            remaining = remaining[end:]
        else:
            chunks.append(remaining[:cut])
            remaining = remaining[cut + 1 :]
    if remaining:
        chunks.append(remaining)
    return chunks


async def reply_markdown(message: Message, text: str) -> Message:
    """Reply with Markdown, resending as plain text if Telegram rejects the markup."""
    try:
        return await message.reply_text(text, parse_mode="Markdown")
    except BadRequest as exc:
        logger.warning("Markdown rejected (%s), resending as plain text", exc)
        return await message.reply_text(text)


async def send_chunks(message: Message, text: str) -> Message | None:
    """Send *text* as sequential replies. Returns the last message sent."""
    last = None
    for chunk in split_message(text):
        last = await reply_markdown(message, chunk)
    return last
