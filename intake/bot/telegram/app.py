"""Telegram application factory."""

from __future__ import annotations

import logging

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from intake.bot.buffer import ConversationBuffer
from intake.bot.telegram.handlers import (
    handle_clear,
    handle_media,
    handle_message,
    handle_start,
    handle_status,
    make_expiry_notifier,
)
from intake.web.server import HealthServer

logger = logging.getLogger(__name__)

MEDIA_FILTER = (
    filters.PHOTO | filters.Document.ALL | filters.VIDEO | filters.VOICE | filters.AUDIO
)

# Module-level reference so post_shutdown can access it.
_health_server: HealthServer | None = None


def _init_buffer(app: Application) -> None:
    """Route idle-expiry notices back to the chat through the bot."""
    ConversationBuffer.get().set_expiry_callback(make_expiry_notifier(app.bot))


async def _post_init(app: Application) -> None:
    """Called after the Application is fully initialized (event loop running)."""
    global _health_server  # noqa: PLW0603

    _health_server = HealthServer()
    await _health_server.start()


async def _post_shutdown(app: Application) -> None:
    """Called during graceful shutdown."""
    ConversationBuffer.get().close()
    if _health_server is not None:
        await _health_server.stop()


def create_app(token: str) -> Application:
    """Build and configure the Telegram application.

    Media handlers block so items are buffered in arrival order; the text
    handler does not, so a long model call never stalls other chats.
    """
    app = Application.builder().token(token).build()

    _init_buffer(app)

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("clear", handle_clear))
    app.add_handler(CommandHandler("status", handle_status))
    app.add_handler(MessageHandler(MEDIA_FILTER, handle_media))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message, block=False))

    app.post_init = _post_init
    app.post_shutdown = _post_shutdown

    return app
