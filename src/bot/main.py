"""Telegram bot entrypoint: `python -m src.bot.main`."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties

from src.app import create_app
from src.bot.router import router
from src.config.logging import configure_logging
from src.config.settings import Settings, load_settings

logger = logging.getLogger(__name__)


async def run_bot(settings: Settings) -> None:
    """Open the DB pool and long-poll Telegram until cancelled."""

    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required to run the bot")

    app = create_app(settings)
    await app.pool.open(wait=True)

    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=None))
    dispatcher = Dispatcher()
    dispatcher.include_router(router)

    logger.info(
        "bot starting parsing_mode=%s min_confidence=%.2f max_rows=%d",
        app.controller.status().parsing_mode,
        settings.min_confidence,
        settings.max_rows,
    )
    try:
        # Handlers receive `app` as a keyword argument from the dispatcher workflow data.
        await dispatcher.start_polling(bot, app=app)
    finally:
        logger.info("bot stopping")
        await bot.session.close()
        await app.pool.close()


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    asyncio.run(run_bot(settings))


if __name__ == "__main__":
    main()
