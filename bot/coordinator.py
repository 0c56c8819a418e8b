# bot/coordinator.py
"""
OrderCoordinator: bot va REST endpoint uchun yagona kirish nuqtasi.

Har bir amal:
    1) buyurtmani o'qiydi
    2) lifecycle.apply_action orqali yangi holatni hisoblaydi (sof funksiya)
    3) repository.save_transition bilan shartli yozadi (eski holat o'zgarmagan bo'lsa)
    4) qaytishdan oldin CrossPartyNotifier ni chaqiradi

Repository (``repo``) quyidagilarni taqdim etadi:
    get_order, get_product, get_account, is_admin,
    create_order(draft, buyer_id, order_type, anon_temp_id),
    save_transition(order_id, expected, new),
    create_notification(payload, title, content)
"""
import logging
from dataclasses import replace
from typing import Iterable, Optional

from .capture import OrderDraft
from .exceptions import PermissionDenied, TransitionError
from .lifecycle import (
    Action,
    OverridePolicy,
    allowed_actions,
    apply_action,
    apply_override,
    derive_stage,
)
from .models import OrderRecord, OrderStatus, OrderType
from .notifications import NewOrderPayload
from .notifier import CrossPartyNotifier, make_correlation_token, parse_correlation_token

logger = logging.getLogger(__name__)


class OrderCoordinator:
    def __init__(
            self,
            repo,
            notifier: CrossPartyNotifier,
            override_policy: OverridePolicy | str = OverridePolicy.KEEP_FLAGS,
            admin_ids: Iterable[int] = (),
    ) -> None:
        self.repo = repo
        self.notifier = notifier
        self.override_policy = OverridePolicy(override_policy)
        self.admin_ids = set(admin_ids)

    async def is_admin(self, actor_id: Optional[int]) -> bool:
        """actor_id - Telegram id (bot ham, web panel ham shu id bilan ishlaydi)."""
        if actor_id is None:
            return False
        if actor_id in self.admin_ids:
            return True
        return await self.repo.is_admin(actor_id)

    # =========================
    # CREATE
    # =========================

    async def create_order(
            self,
            draft: OrderDraft,
            participant_id: Optional[int] = None,
            buyer_id: Optional[int] = None,
            order_type: Optional[OrderType] = None,
    ) -> OrderRecord:
        """
        Stock kamaytirish, order_count oshirish va buyurtma yozish bitta
        atomar qadamda bajariladi (repo.create_order). Yetmasa OutOfStock.
        """
        if order_type is None:
            if participant_id is not None:
                order_type = OrderType.TELEGRAM
            elif buyer_id is not None:
                order_type = OrderType.WEBSITE
            else:
                order_type = OrderType.ANONYMOUS

        anon_temp_id = make_correlation_token(participant_id) if participant_id is not None else None

        order = await self.repo.create_order(
            draft,
            buyer_id=buyer_id,
            order_type=OrderType(order_type),
            anon_temp_id=anon_temp_id,
        )
        logger.info(
            "Order created id=%s product=%s qty=%s total=%s type=%s",
            order.id, order.product_id, order.quantity, order.total_amount, order.order_type.value,
        )

        try:
            await self.repo.create_notification(
                NewOrderPayload(order_id=order.id),
                title=f"Yangi buyurtma #{order.short_id}",
                content=f"{order.product_name} x {order.quantity} - {order.full_name}, {order.phone}",
            )
        except Exception as e:
            # buyurtma allaqachon yozilgan, inbox yozuvi ikkinchi darajali
            logger.exception("Failed to record new_order notification for order_id=%s: %s", order.id, e)

        await self.notifier.order_created(order)
        return order

    # =========================
    # TRANSITIONS
    # =========================

    async def _default_pickup_address(self, order: OrderRecord) -> str:
        if order.seller_id is not None:
            seller = await self.repo.get_account(order.seller_id)
            if seller is not None and seller.pickup_address:
                return seller.pickup_address
        return order.address

    async def perform(
            self,
            order_id: int,
            action: Action | str,
            actor_id: Optional[int] = None,
            notes: Optional[str] = None,
            pickup_address: Optional[str] = None,
    ) -> OrderRecord:
        try:
            action = Action(action)
        except ValueError:
            raise TransitionError(str(action), "noma'lum amal")

        order = await self.repo.get_order(order_id)

        if action is Action.REORDER:
            return await self.reorder(order)

        new_state = apply_action(order.state, action, notes=notes, pickup_address=pickup_address)
        if action is Action.AGREE and not new_state.pickup_address:
            new_state = replace(new_state, pickup_address=await self._default_pickup_address(order))

        updated = await self.repo.save_transition(order.id, order.state, new_state)
        logger.info(
            "Order %s: %s by actor=%s -> %s",
            order.id, action.value, actor_id, derive_stage(updated.state).value,
        )

        await self.notifier.transition_applied(updated, action)
        return updated

    async def accept(self, order_id: int, pickup_address: Optional[str] = None,
                     notes: Optional[str] = None, actor_id: Optional[int] = None) -> OrderRecord:
        return await self.perform(order_id, Action.AGREE, actor_id, notes=notes, pickup_address=pickup_address)

    async def reject(self, order_id: int, notes: Optional[str] = None,
                     actor_id: Optional[int] = None) -> OrderRecord:
        return await self.perform(order_id, Action.REJECT, actor_id, notes=notes)

    async def buyer_went(self, order_id: int, notes: Optional[str] = None,
                         actor_id: Optional[int] = None) -> OrderRecord:
        return await self.perform(order_id, Action.CLIENT_WENT, actor_id, notes=notes)

    async def buyer_did_not_go(self, order_id: int, notes: Optional[str] = None,
                               actor_id: Optional[int] = None) -> OrderRecord:
        return await self.perform(order_id, Action.CLIENT_NOT_WENT, actor_id, notes=notes)

    async def product_given(self, order_id: int, notes: Optional[str] = None,
                            actor_id: Optional[int] = None) -> OrderRecord:
        return await self.perform(order_id, Action.PRODUCT_GIVEN, actor_id, notes=notes)

    async def product_not_given(self, order_id: int, notes: Optional[str] = None,
                                actor_id: Optional[int] = None) -> OrderRecord:
        return await self.perform(order_id, Action.PRODUCT_NOT_GIVEN, actor_id, notes=notes)

    async def reorder(self, order: OrderRecord) -> OrderRecord:
        """Yakunlangan/bekor qilingan buyurtmani xuddi shu ma'lumotlar bilan qayta yaratadi."""
        if Action.REORDER not in allowed_actions(order.state):
            raise TransitionError(Action.REORDER.value, "buyurtma hali yakunlanmagan")

        product = await self.repo.get_product(order.product_id)
        draft = OrderDraft(
            product=product,
            quantity=order.quantity,
            full_name=order.full_name,
            phone=order.phone,
            address=order.address,
            birthdate=order.birthdate,
        )
        new_order = await self.create_order(
            draft,
            participant_id=parse_correlation_token(order.anon_temp_id),
            buyer_id=order.buyer_id,
            order_type=order.order_type,
        )
        logger.info("Order %s reordered as %s", order.id, new_order.id)
        return new_order

    # =========================
    # ADMIN OVERRIDE
    # =========================

    async def admin_override(self, order_id: int, status: OrderStatus | str,
                             actor_id: Optional[int]) -> OrderRecord:
        if not await self.is_admin(actor_id):
            raise PermissionDenied(f"Admin emas: {actor_id}")

        try:
            status = OrderStatus(status)
        except ValueError:
            raise TransitionError("override", f"noma'lum status: {status}")

        order = await self.repo.get_order(order_id)
        new_state = apply_override(order.state, status, self.override_policy)
        updated = await self.repo.save_transition(order.id, order.state, new_state)
        logger.info(
            "Order %s: admin override %s -> %s by %s (policy=%s)",
            order.id, order.status.value, status.value, actor_id, self.override_policy.value,
        )

        await self.notifier.status_overridden(updated)
        return updated
