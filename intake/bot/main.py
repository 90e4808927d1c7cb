"""Intake bot entry point."""

import logging
import sys

from intake.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Validate required config and start polling Telegram."""
    if not settings.telegram_bot_token:
        logger.error("TELEGRAM_BOT_TOKEN is not set")
        sys.exit(1)

    keys = settings.get_gemini_api_keys()
    if not keys:
        logger.error("GEMINI_API_KEYS is empty, at least one key is required")
        sys.exit(1)

    from intake.bot.telegram.app import create_app

    logger.info("Starting intake bot with model %s (%d API keys)...", settings.gemini_model, len(keys))
    app = create_app(settings.telegram_bot_token)
    app.run_polling()


if __name__ == "__main__":
    main()
