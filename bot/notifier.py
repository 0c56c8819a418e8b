# bot/notifier.py
import logging
import re
import time
from typing import Iterable, List, Optional

from aiogram.types import InlineKeyboardMarkup

from . import texts
from .dispatcher import Delivery, NotificationDispatcher
from .lifecycle import Action
from .models import OrderRecord

logger = logging.getLogger(__name__)

CORRELATION_TOKEN_REGEX = re.compile(r"^tg_(\d+)_\d+$")


def make_correlation_token(telegram_id: int, now_ms: Optional[int] = None) -> str:
    """Anonim bot buyurtmasi uchun: tg_<telegram_id>_<unix_ms>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"tg_{telegram_id}_{now_ms}"


def parse_correlation_token(token: Optional[str]) -> Optional[int]:
    """tg_ token dan Telegram chat id ni oladi. web_ va boshqa tokenlar -> None."""
    if not token:
        return None
    m = CORRELATION_TOKEN_REGEX.match(token.strip())
    if not m:
        return None
    return int(m.group(1))


class CrossPartyNotifier:
    """
    Lifecycle o'zgarishidan keyin qarama-qarshi tomonni topib xabar yuboradi.

    ``directory`` - endpointlarni aniqlovchi repository:
        account_chat_id(account_id) -> int | None
        admin_chat_ids() -> list[int]

    Hech qachon exception ko'tarmaydi: har bir qabul qiluvchi uchun
    Delivery ro'yxati qaytadi.
    """

    def __init__(
            self,
            dispatcher: NotificationDispatcher,
            directory,
            extra_admin_ids: Iterable[int] = (),
    ) -> None:
        self.dispatcher = dispatcher
        self.directory = directory
        self.extra_admin_ids = list(extra_admin_ids)

    # =========================
    # ENDPOINT RESOLUTION
    # =========================

    async def buyer_chat_id(self, order: OrderRecord) -> Optional[int]:
        if order.buyer_id is not None:
            chat_id = await self.directory.account_chat_id(order.buyer_id)
            if chat_id is not None:
                return chat_id
        return parse_correlation_token(order.anon_temp_id)

    async def seller_chat_id(self, order: OrderRecord) -> Optional[int]:
        if order.seller_id is None:
            return None
        return await self.directory.account_chat_id(order.seller_id)

    async def admin_chat_ids(self) -> List[int]:
        ids = list(self.extra_admin_ids)
        ids.extend(await self.directory.admin_chat_ids())
        return list(dict.fromkeys(ids))

    # =========================
    # SENDING
    # =========================

    async def _send_one(
            self,
            chat_id: Optional[int],
            text: str,
            reply_markup: Optional[InlineKeyboardMarkup] = None,
            role: str = "participant",
            order_id=None,
    ) -> List[Delivery]:
        if chat_id is None:
            logger.warning("No %s endpoint for order_id=%s, notification skipped", role, order_id)
            return []
        return [await self.dispatcher.send(chat_id, text, reply_markup=reply_markup)]

    async def notify_participant(self, chat_id: int, text: str,
                                 reply_markup: Optional[InlineKeyboardMarkup] = None) -> List[Delivery]:
        return await self._send_one(chat_id, text, reply_markup)

    async def notify_admins(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> List[Delivery]:
        try:
            admin_ids = await self.admin_chat_ids()
        except Exception as e:
            logger.exception("Failed to resolve admin endpoints: %s", e)
            admin_ids = list(self.extra_admin_ids)
        if not admin_ids:
            logger.warning("No admin endpoints configured, notification skipped")
            return []
        return await self.dispatcher.broadcast(admin_ids, text, reply_markup=reply_markup)

    async def order_created(self, order: OrderRecord) -> List[Delivery]:
        deliveries = await self.notify_admins(
            texts.new_order_for_admins(order),
            reply_markup=texts.admin_override_kb(order.id),
        )
        try:
            seller_chat = await self.seller_chat_id(order)
        except Exception as e:
            logger.exception("Failed to resolve seller for order_id=%s: %s", order.id, e)
            return deliveries
        deliveries += await self._send_one(
            seller_chat,
            texts.new_order_for_seller(order),
            texts.seller_decision_kb(order.id),
            role="seller",
            order_id=order.id,
        )
        return deliveries

    async def transition_applied(self, order: OrderRecord, action: Action) -> List[Delivery]:
        action = Action(action)
        try:
            if action in (Action.CLIENT_WENT, Action.CLIENT_NOT_WENT):
                chat_id = await self.seller_chat_id(order)
                role = "seller"
            else:
                chat_id = await self.buyer_chat_id(order)
                role = "buyer"
        except Exception as e:
            logger.exception("Failed to resolve endpoint for order_id=%s action=%s: %s", order.id, action.value, e)
            return []

        if action is Action.AGREE:
            text, kb = texts.accepted_for_buyer(order), texts.buyer_pickup_kb(order.id)
        elif action is Action.REJECT:
            text, kb = texts.rejected_for_buyer(order), texts.reorder_kb(order.id)
        elif action is Action.CLIENT_WENT:
            text, kb = texts.buyer_went_for_seller(order), texts.seller_handover_kb(order.id)
        elif action is Action.CLIENT_NOT_WENT:
            text, kb = texts.buyer_did_not_go_for_seller(order), None
        elif action is Action.PRODUCT_GIVEN:
            text, kb = texts.product_given_for_buyer(order), texts.reorder_kb(order.id)
        elif action is Action.PRODUCT_NOT_GIVEN:
            text, kb = texts.product_not_given_for_buyer(order), texts.reorder_kb(order.id)
        else:
            # reorder yangi buyurtma sifatida order_created orqali yuboriladi
            return []

        return await self._send_one(chat_id, text, kb, role=role, order_id=order.id)

    async def status_overridden(self, order: OrderRecord) -> List[Delivery]:
        try:
            chat_id = await self.buyer_chat_id(order)
        except Exception as e:
            logger.exception("Failed to resolve buyer for order_id=%s: %s", order.id, e)
            return []
        return await self._send_one(
            chat_id,
            texts.status_changed_for_buyer(order),
            role="buyer",
            order_id=order.id,
        )
