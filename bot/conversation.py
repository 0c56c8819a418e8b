# bot/conversation.py
"""
Kiruvchi matnni sessiya orqali yo'naltirish (transportdan mustaqil).

Handler faqat Reply ni Telegramga yuboradi; bu yerda aiogram Message yo'q.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from aiogram.types import InlineKeyboardMarkup

from . import texts
from .capture import Complete, Continue, OrderDraft, Reject, start_capture, step
from .coordinator import OrderCoordinator
from .exceptions import OutOfStock, ProductNotFound
from .inbox import AdminInbox
from .notifications import ContactPayload
from .storage import Session, SessionState, SessionStore
from .utils.formatting import esc

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


@dataclass(frozen=True)
class Reply:
    text: str
    reply_markup: Optional[InlineKeyboardMarkup] = None
    photo: Optional[str] = None


class Conversation:
    def __init__(
            self,
            sessions: SessionStore,
            coordinator: OrderCoordinator,
            repo,
            inbox: AdminInbox,
            ask_birthdate: bool = True,
            site_url: str = "",
    ) -> None:
        self.sessions = sessions
        self.coordinator = coordinator
        self.repo = repo
        self.inbox = inbox
        self.ask_birthdate = ask_birthdate
        self.site_url = site_url

    # =========================
    # START / CANCEL
    # =========================

    async def product_card(self, product_id: int) -> Reply:
        """Deep link (/start product_<id>) uchun mahsulot kartasi; rasm bo'lsa photo bilan."""
        try:
            product = await self.repo.get_product(product_id)
        except ProductNotFound:
            return Reply(texts.PRODUCT_NOT_FOUND)
        if product.stock_quantity <= 0:
            return Reply(texts.PRODUCT_UNAVAILABLE)
        return Reply(
            texts.product_card(product),
            texts.product_card_kb(product.id, self.site_url),
            photo=product.image_url or None,
        )

    async def start_order(self, participant_id: int, product_id: int) -> Reply:
        try:
            product = await self.repo.get_product(product_id)
        except ProductNotFound:
            return Reply(texts.PRODUCT_NOT_FOUND)

        try:
            result = start_capture(product, ask_birthdate=self.ask_birthdate)
        except OutOfStock:
            return Reply(texts.PRODUCT_UNAVAILABLE)

        self.sessions.set(participant_id, Session(state=SessionState.ORDERING, builder=result.builder))
        logger.info("Capture started participant=%s product=%s", participant_id, product.id)
        return Reply(result.prompt, texts.cancel_capture_kb())

    def start_contact(self, participant_id: int) -> Reply:
        self.sessions.set(participant_id, Session(state=SessionState.CONTACT_MESSAGE))
        return Reply(texts.CONTACT_PROMPT, texts.cancel_capture_kb())

    def start_search(self, participant_id: int) -> Reply:
        self.sessions.set(participant_id, Session(state=SessionState.SEARCHING))
        return Reply(texts.SEARCH_PROMPT, texts.cancel_capture_kb())

    def cancel(self, participant_id: int) -> Reply:
        self.sessions.delete(participant_id)
        return Reply(texts.CAPTURE_CANCELLED, texts.main_menu_kb())

    # =========================
    # TEXT ROUTING
    # =========================

    async def handle_text(
            self,
            participant_id: int,
            text: str,
            username: Optional[str] = None,
            full_name: Optional[str] = None,
    ) -> Optional[Reply]:
        """Sessiya bo'lmasa None: handler o'zi hal qiladi."""
        session = self.sessions.get(participant_id)
        if session is None:
            return None

        if session.state is SessionState.ORDERING:
            return await self._handle_ordering(participant_id, session, text)
        if session.state is SessionState.CONTACT_MESSAGE:
            return await self._handle_contact(participant_id, text, username, full_name)
        if session.state is SessionState.SEARCHING:
            return await self._handle_search(participant_id, text)

        self.sessions.delete(participant_id)
        return None

    async def _handle_ordering(self, participant_id: int, session: Session, text: str) -> Reply:
        try:
            result = step(session.builder, text)
        except Exception as e:
            logger.exception("Capture session broken for participant=%s: %s", participant_id, e)
            self.sessions.delete(participant_id)
            return Reply(texts.GENERIC_FAILURE, texts.main_menu_kb())

        if isinstance(result, Reject):
            return Reply(result.error, texts.cancel_capture_kb())

        if isinstance(result, Continue):
            session.builder = result.builder
            self.sessions.set(participant_id, session)
            return Reply(result.prompt, texts.cancel_capture_kb())

        if isinstance(result, Complete):
            # natija qanday bo'lishidan qat'i nazar sessiya o'chiriladi
            self.sessions.delete(participant_id)
            return await self._commit(participant_id, result.draft)

        raise TypeError(f"Unknown step result: {type(result).__name__}")

    async def _commit(self, participant_id: int, draft: OrderDraft) -> Reply:
        try:
            account = await self.repo.account_by_telegram(participant_id)
            order = await self.coordinator.create_order(
                draft,
                participant_id=participant_id,
                buyer_id=account.id if account is not None else None,
            )
        except OutOfStock as e:
            logger.info("Order rejected for participant=%s: %s", participant_id, e)
            return Reply(texts.OUT_OF_STOCK, texts.main_menu_kb())
        except Exception as e:
            logger.exception("Order creation failed for participant=%s: %s", participant_id, e)
            return Reply(texts.ORDER_FAILURE, texts.main_menu_kb())

        return Reply(texts.order_created_for_buyer(order), texts.main_menu_kb())

    async def _handle_contact(self, participant_id: int, text: str,
                              username: Optional[str], full_name: Optional[str]) -> Reply:
        self.sessions.delete(participant_id)
        text = (text or "").strip()
        if not text:
            return Reply(texts.GENERIC_FAILURE, texts.main_menu_kb())

        try:
            account = await self.repo.account_by_telegram(participant_id)
            payload = ContactPayload(
                telegram_id=participant_id,
                username=username,
                phone=account.phone if account is not None else None,
                full_name=full_name or (account.full_name if account is not None else None),
            )
            await self.inbox.submit(
                payload,
                title=f"Murojaat: {payload.full_name or payload.username or participant_id}",
                content=text,
            )
        except Exception as e:
            logger.exception("Contact message failed for participant=%s: %s", participant_id, e)
            return Reply(texts.GENERIC_FAILURE, texts.main_menu_kb())

        return Reply(texts.CONTACT_SENT, texts.main_menu_kb())

    async def _handle_search(self, participant_id: int, text: str) -> Reply:
        self.sessions.delete(participant_id)
        query = (text or "").strip()

        try:
            products = await self.repo.search_products(query, limit=SEARCH_LIMIT)
        except Exception as e:
            logger.exception("Search failed for query=%r: %s", query, e)
            return Reply(texts.GENERIC_FAILURE, texts.main_menu_kb())

        if not products:
            return Reply(f"❌ \"{esc(query)}\" bo'yicha mahsulot topilmadi.", texts.main_menu_kb())

        return Reply(
            f"🔍 \"{esc(query)}\" bo'yicha {len(products)} ta mahsulot topildi:",
            texts.products_kb(products),
        )
