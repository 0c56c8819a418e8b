# main.py
import asyncio
import logging
import os

import django
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from bot.config import load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

SESSION_PURGE_INTERVAL_SECONDS = 300


async def purge_sessions_periodically(sessions, interval: int = SESSION_PURGE_INTERVAL_SECONDS):
    while True:
        await asyncio.sleep(interval)
        sessions.purge_expired()


async def main():
    settings = load_settings()

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")
    django.setup()

    # django.setup() dan keyin import qilinadi
    from apps.repository import DjangoRepository
    from bot.deps import build_deps
    from bot.handlers import register_all_handlers

    bot = Bot(
        token=settings.tg_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    deps = build_deps(bot, settings, DjangoRepository())

    dp = Dispatcher()
    register_all_handlers(dp, deps)

    purge_task = None
    if settings.session_ttl_enabled:
        purge_task = asyncio.create_task(purge_sessions_periodically(deps.sessions))

    logger.info("Bot started (override_policy=%s, session_ttl=%s)",
                settings.override_policy, settings.session_ttl_seconds)
    try:
        await dp.start_polling(bot)
    finally:
        if purge_task is not None:
            purge_task.cancel()


if __name__ == "__main__":
    asyncio.run(main())
