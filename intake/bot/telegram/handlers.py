"""Telegram handlers: buffer media and notes, dispatch on triggers and replies."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from intake.bot.buffer import ConversationBuffer
from intake.bot.telegram.replies import send_chunks
from intake.bot.triggers import parse_trigger
from intake.config import settings
from intake.context.store import ContextStore
from intake.dispatch import RequestDispatcher
from intake.models import BufferedItem, ItemKind, SynthesisRecord

if TYPE_CHECKING:
    from telegram import Bot, Message, Update
    from telegram.ext import ContextTypes

    from intake.bot.buffer import ExpiryCallback
    from intake.bot.triggers import Trigger
    from intake.dispatch import DispatchResult

logger = logging.getLogger(__name__)

HELP_TEXT = """\
*Clinical Intake Bot*

1. Send images, PDFs, voice notes, audio or short videos, plus any text notes.
2. Send a command to process everything:
   • *.*  Clinical Profile (smart 3 fps video sampling)
   • *.2* / *.1*  Same with 2 fps / 1 fps sampling
   • *..*  Clinical Brief (profile condensed in a second pass), also *..2* / *..1*
3. Reply to one of my answers to ask a question or add a correction.

/clear drops everything pending. Pending items expire after a few minutes of inactivity."""


def _chat_id(update: Update) -> str:
    return str(update.effective_chat.id)


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start: usage help."""
    await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")


async def handle_clear(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clear: drop pending items without dispatching."""
    buffer = ConversationBuffer.get()
    chat_id = _chat_id(update)
    async with buffer.lock(chat_id):
        items = buffer.drain(chat_id)
    await update.message.reply_text(f"Cleared {len(items)} items from buffer.")


async def handle_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status: show pending items and backend config."""
    pending = ConversationBuffer.get().pending_count(_chat_id(update))
    lines = [
        "*Intake Status*",
        f"Pending items: {pending}",
        f"Model: {settings.gemini_model}",
        f"API keys: {len(settings.get_gemini_api_keys())}",
        "Status: online",
    ]
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


# -- Dispatch paths ------------------------------------------------------------


async def _delete_quietly(notice: Message) -> None:
    with contextlib.suppress(Exception):
        await notice.delete()


async def _save_record(
    chat_id: str,
    sent: Message | None,
    result: DispatchResult,
    source_media: list[dict[str, str | None]],
) -> None:
    """Persist the answer keyed by the last message that carried it."""
    if sent is None:
        return
    record = SynthesisRecord(
        conversation_id=chat_id,
        message_id=str(sent.message_id),
        response_text=result.text,
        mode=result.mode,
        source_media=source_media,
    )
    try:
        await ContextStore.get().put(record)
    except Exception:
        logger.exception("Failed to save context for %s", chat_id)


async def _lookup_record(chat_id: str, message_id: str) -> SynthesisRecord | None:
    """Find the record for a replied-to message; store errors count as a miss."""
    try:
        return await ContextStore.get().lookup(chat_id, message_id)
    except Exception:
        logger.exception("Context lookup failed for %s/%s", chat_id, message_id)
        return None


async def _run_synthesis(update: Update, trigger: Trigger, items: list[BufferedItem]) -> None:
    chat_id = _chat_id(update)
    if not items:
        await update.message.reply_text("Buffer empty. Send files first.")
        return

    label = "chained, " if trigger.chained else ""
    notice = await update.message.reply_text(
        f"Processing {len(items)} items ({label}smart {trigger.fps} fps)..."
    )
    logger.info(
        "Trigger from %s: %d items, fps=%d, chained=%s",
        chat_id, len(items), trigger.fps, trigger.chained,
    )

    try:
        result = await RequestDispatcher.get().synthesize(
            items, fps=trigger.fps, chained=trigger.chained
        )
        sent = await send_chunks(update.message, result.text)
    except Exception as exc:
        logger.exception("Synthesis failed for %s", chat_id)
        await update.message.reply_text(f"Error: {exc}")
        return
    finally:
        await _delete_quietly(notice)

    await _save_record(chat_id, sent, result, [item.summary() for item in items])


async def _run_follow_up(update: Update, record: SynthesisRecord, text: str) -> None:
    chat_id = _chat_id(update)
    notice = await update.message.reply_text("Analyzing reply...")
    logger.info("Follow-up from %s on %s (%s)", chat_id, record.message_id, record.mode)

    try:
        result = await RequestDispatcher.get().follow_up(record, text)
        sent = await send_chunks(update.message, result.text)
    except Exception as exc:
        logger.exception("Follow-up failed for %s", chat_id)
        await update.message.reply_text(f"Error: {exc}")
        return
    finally:
        await _delete_quietly(notice)

    await _save_record(chat_id, sent, result, record.source_media)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle text: trigger, follow-up reply, or a buffered note (in that order)."""
    text = update.message.text.strip()
    chat_id = _chat_id(update)

    buffer = ConversationBuffer.get()
    trigger = parse_trigger(text)
    replied = update.message.reply_to_message
    record = None

    # Routing runs under the conversation lock so a later trigger cannot
    # drain before an earlier note is appended. Model calls run outside it.
    async with buffer.lock(chat_id):
        if trigger is not None:
            items = buffer.drain(chat_id)
        else:
            if replied is not None:
                record = await _lookup_record(chat_id, str(replied.message_id))
            if record is None:
                buffer.append(chat_id, BufferedItem.note(text))
                pending = buffer.pending_count(chat_id)

    if trigger is not None:
        await _run_synthesis(update, trigger, items)
    elif record is not None:
        await _run_follow_up(update, record, text)
    else:
        await update.message.reply_text(f"Text note added. ({pending} items pending)")


# -- Media intake --------------------------------------------------------------


async def handle_media(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Buffer a photo, PDF, video, voice note or audio file by its download link."""
    message = update.message
    chat_id = _chat_id(update)

    if message.photo:
        # Largest resolution is last
        file_id = message.photo[-1].file_id
        kind, mime_type, label = ItemKind.IMAGE, "image/jpeg", "PHOTO"
    elif message.document:
        mime_type = message.document.mime_type or ""
        if "pdf" not in mime_type:
            await message.reply_text("Only PDFs are supported for documents.")
            return
        file_id = message.document.file_id
        kind, label = ItemKind.PDF, "DOCUMENT"
    elif message.video:
        file_id = message.video.file_id
        kind, mime_type, label = ItemKind.VIDEO, message.video.mime_type or "video/mp4", "VIDEO"
    elif message.voice or message.audio:
        obj = message.voice or message.audio
        file_id = obj.file_id
        kind, mime_type = ItemKind.AUDIO, obj.mime_type or "audio/ogg"
        label = "VOICE" if message.voice else "AUDIO"
    else:
        return

    buffer = ConversationBuffer.get()
    async with buffer.lock(chat_id):
        try:
            tg_file = await context.bot.get_file(file_id)
        except Exception:
            tg_file = None
            logger.exception("Failed to resolve file link for %s", chat_id)
        else:
            buffer.append(
                chat_id, BufferedItem.media(kind, tg_file.file_path, mime_type, message.caption)
            )
            pending = buffer.pending_count(chat_id)

    if tg_file is None:
        await message.reply_text("Failed to get file link. Is it too big?")
        return
    await message.reply_text(f"{label} added. ({pending} items pending)")


def make_expiry_notifier(bot: Bot) -> ExpiryCallback:
    """Build the callback that tells a chat its buffer was cleared for inactivity."""

    async def _notify(conversation_id: str, count: int) -> None:
        await bot.send_message(
            chat_id=int(conversation_id),
            text=f"Timeout: cleared {count} pending items from buffer.",
        )

    return _notify
