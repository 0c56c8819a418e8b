# apps/services.py
from contextlib import asynccontextmanager
from typing import AsyncIterator

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from apps.repository import DjangoRepository
from bot.config import load_settings
from bot.coordinator import OrderCoordinator
from bot.deps import build_deps


@asynccontextmanager
async def coordinator_session() -> AsyncIterator[OrderCoordinator]:
    """
    REST so'rovi uchun coordinator: bot bilan bir xil validatsiya va
    bir xil notifier. Bot session so'rov oxirida yopiladi.
    """
    settings = load_settings()
    bot = Bot(
        token=settings.tg_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    try:
        deps = build_deps(bot, settings, DjangoRepository())
        yield deps.coordinator
    finally:
        await bot.session.close()
