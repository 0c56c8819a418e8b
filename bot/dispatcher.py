# bot/dispatcher.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 15


@dataclass(frozen=True)
class Delivery:
    chat_id: int
    ok: bool
    error: Optional[str] = None


class NotificationDispatcher:
    """
    Bitta chatga xabar yuboradi. Xatolik (bot bloklangan, chat topilmadi,
    tarmoq) log qilinadi va Delivery(ok=False) sifatida qaytadi,
    hech qachon yuqoriga ko'tarilmaydi.
    """

    def __init__(self, bot: Bot, timeout: float = SEND_TIMEOUT_SECONDS) -> None:
        self.bot = bot
        self.timeout = timeout

    async def send(
            self,
            chat_id: int,
            text: str,
            reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> Delivery:
        try:
            await asyncio.wait_for(
                self.bot.send_message(chat_id, text, reply_markup=reply_markup),
                timeout=self.timeout,
            )
        except (TelegramAPIError, asyncio.TimeoutError) as e:
            logger.error("Failed to send notification to chat_id=%s: %s", chat_id, e)
            return Delivery(chat_id=chat_id, ok=False, error=str(e) or type(e).__name__)
        except Exception as e:
            # yopilgan session va h.k.
            logger.exception("Unexpected error while sending to chat_id=%s: %s", chat_id, e)
            return Delivery(chat_id=chat_id, ok=False, error=repr(e))
        return Delivery(chat_id=chat_id, ok=True)

    async def send_photo(
            self,
            chat_id: int,
            photo: str,
            caption: str,
            reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> Delivery:
        try:
            await asyncio.wait_for(
                self.bot.send_photo(chat_id, photo, caption=caption, reply_markup=reply_markup),
                timeout=self.timeout,
            )
        except TelegramBadRequest as e:
            # rasm ochilmasa oddiy matn yuboramiz
            logger.warning("send_photo failed for chat_id=%s, falling back to text: %s", chat_id, e)
            return await self.send(chat_id, caption, reply_markup=reply_markup)
        except (TelegramAPIError, asyncio.TimeoutError) as e:
            logger.error("Failed to send photo to chat_id=%s: %s", chat_id, e)
            return Delivery(chat_id=chat_id, ok=False, error=str(e) or type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected error while sending photo to chat_id=%s: %s", chat_id, e)
            return Delivery(chat_id=chat_id, ok=False, error=repr(e))
        return Delivery(chat_id=chat_id, ok=True)

    async def broadcast(
            self,
            chat_ids: Iterable[int],
            text: str,
            reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> List[Delivery]:
        targets = list(dict.fromkeys(chat_ids))
        if not targets:
            return []

        results = await asyncio.gather(
            *(self.send(chat_id, text, reply_markup=reply_markup) for chat_id in targets),
            return_exceptions=True,
        )

        deliveries: List[Delivery] = []
        for chat_id, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.error("Unexpected error while notifying chat_id=%s: %r", chat_id, result)
                deliveries.append(Delivery(chat_id=chat_id, ok=False, error=repr(result)))
            else:
                deliveries.append(result)

        failed = sum(1 for d in deliveries if not d.ok)
        logger.info("Broadcast finished: sent=%s failed=%s", len(deliveries) - failed, failed)
        return deliveries
