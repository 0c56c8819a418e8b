# bot/inbox.py
import logging
from typing import Optional

from . import texts
from .coordinator import OrderCoordinator
from .exceptions import OrderError, PermissionDenied, TransitionError
from .models import OrderStatus
from .notifications import (
    ContactPayload,
    NewOrderPayload,
    NotificationPayload,
    NotificationRecord,
    NotificationStatus,
    NotificationType,
    ProductApprovalPayload,
    SellerApplicationPayload,
)
from .notifier import CrossPartyNotifier

logger = logging.getLogger(__name__)


class AdminInbox:
    """
    Admin e'tiboriga muhtoj hodisalar (murojaat, sotuvchi arizasi,
    mahsulot tasdiqlash, yangi buyurtma).

    resolve() pending -> approved/rejected (contact uchun responded/closed)
    o'tkazadi va bog'langan yozuvga ta'sir qiladi.
    """

    def __init__(self, repo, notifier: CrossPartyNotifier, coordinator: OrderCoordinator) -> None:
        self.repo = repo
        self.notifier = notifier
        self.coordinator = coordinator

    async def submit(self, payload: NotificationPayload, title: str, content: str) -> NotificationRecord:
        item = await self.repo.create_notification(payload, title=title, content=content)
        logger.info("Admin notification #%s (%s) submitted", item.id, item.type.value)

        username = phone = None
        if isinstance(payload, ContactPayload):
            username, phone = payload.username, payload.phone
            kb = None
        else:
            kb = texts.inbox_kb(item.id)

        await self.notifier.notify_admins(
            texts.inbox_item_for_admins(item.id, item.type.value, title, content, username=username, phone=phone),
            reply_markup=kb,
        )
        return item

    async def resolve(
            self,
            notification_id: int,
            approve: bool,
            actor_id: Optional[int],
            response: Optional[str] = None,
    ) -> NotificationRecord:
        if not await self.coordinator.is_admin(actor_id):
            raise PermissionDenied(f"Admin emas: {actor_id}")

        item = await self.repo.get_notification(notification_id)
        if not item.is_pending:
            raise TransitionError("resolve", f"murojaat allaqachon ko'rib chiqilgan ({item.status.value})")

        if item.type is NotificationType.CONTACT:
            if approve and not response:
                raise TransitionError("resolve", "javob matni bo'sh")
            status = NotificationStatus.RESPONDED if approve else NotificationStatus.CLOSED
        else:
            status = NotificationStatus.APPROVED if approve else NotificationStatus.REJECTED

        # shartli yozuv: parallel resolve bo'lsa faqat bittasi o'tadi
        item = await self.repo.resolve_notification(notification_id, status, response, actor_id)
        logger.info("Admin notification #%s -> %s by %s", item.id, status.value, actor_id)

        await self._cascade(item, approve, actor_id)
        return item

    async def _cascade(self, item: NotificationRecord, approve: bool, actor_id: Optional[int]) -> None:
        payload = item.payload

        if isinstance(payload, SellerApplicationPayload):
            if approve:
                await self.repo.mark_seller(payload.account_id)
            return

        if isinstance(payload, ProductApprovalPayload):
            if approve:
                await self.repo.approve_product(payload.product_id)
            return

        if isinstance(payload, NewOrderPayload):
            target = OrderStatus.PROCESSING if approve else OrderStatus.CANCELLED
            try:
                await self.coordinator.admin_override(payload.order_id, target, actor_id)
            except OrderError as e:
                # buyurtma boshqa yo'l bilan allaqachon o'zgargan bo'lishi mumkin
                logger.warning("Cascade for notification #%s skipped: %s", item.id, e)
            return

        if isinstance(payload, ContactPayload) and approve and item.admin_response:
            await self.notifier.notify_participant(
                payload.telegram_id,
                texts.contact_reply_for_user(item.admin_response),
            )
