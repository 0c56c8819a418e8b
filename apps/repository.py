# apps/repository.py
"""
Django ORM ustidagi repository. Bot va REST view shu orqali ishlaydi.

Barcha public metodlar async (ORM chaqiruvlari sync_to_async bilan o'ralgan).
Ikki muhim atomar amal:
    create_order     - UPDATE product SET stock = stock - q, order_count = order_count + q
                       WHERE stock >= q, keyin INSERT order, bitta tranzaksiyada
    save_transition  - UPDATE order ... WHERE eski holat o'zgarmagan
"""
import logging
from typing import List, Optional

from asgiref.sync import sync_to_async
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.models import Account, AdminNotification, Order, Product
from bot.capture import OrderDraft
from bot.exceptions import (
    NotificationNotFound,
    OrderNotFound,
    OutOfStock,
    ProductNotFound,
    TransitionError,
)
from bot.models import AccountInfo, OrderRecord, OrderState, OrderStatus, OrderType, ProductInfo
from bot.notifications import (
    NotificationPayload,
    NotificationRecord,
    NotificationStatus,
    dump_payload,
    parse_payload,
)

logger = logging.getLogger(__name__)

_FLAG_FIELDS = ("is_agree", "is_client_went", "is_client_claimed")


# =========================
# MAPPERS
# =========================

def product_to_info(p: Product) -> ProductInfo:
    return ProductInfo(
        id=p.id,
        name=p.name,
        price=p.price,
        stock_quantity=p.stock_quantity,
        has_delivery=p.has_delivery,
        delivery_price=p.delivery_price,
        seller_id=p.seller_id,
        order_count=p.order_count,
        description=p.description,
        image_url=p.image_url,
    )


def account_to_info(a: Account) -> AccountInfo:
    return AccountInfo(
        id=a.id,
        telegram_id=a.telegram_id,
        full_name=a.full_name,
        username=a.username,
        phone=a.phone,
        is_admin=a.is_admin,
        is_seller=a.is_seller,
        pickup_address=a.pickup_address,
    )


def order_to_record(o: Order) -> OrderRecord:
    return OrderRecord(
        id=o.id,
        product_id=o.product_id,
        product_name=o.product.name,
        full_name=o.full_name,
        phone=o.phone,
        address=o.address,
        quantity=o.quantity,
        total_amount=o.total_amount,
        status=OrderStatus(o.status),
        is_agree=o.is_agree,
        is_client_went=o.is_client_went,
        is_client_claimed=o.is_client_claimed,
        pickup_address=o.pickup_address,
        seller_notes=o.seller_notes,
        client_notes=o.client_notes,
        seller_id=o.product.seller_id,
        buyer_id=o.buyer_id,
        birthdate=o.birthdate,
        delivery_price=o.delivery_price,
        order_type=OrderType(o.order_type),
        anon_temp_id=o.anon_temp_id,
        created_at=o.created_at,
        updated_at=o.updated_at,
    )


def notification_to_record(n: AdminNotification) -> NotificationRecord:
    return NotificationRecord(
        id=n.id,
        payload=parse_payload(n.data),
        title=n.title,
        content=n.content,
        status=NotificationStatus(n.status),
        admin_response=n.admin_response,
        created_at=n.created_at,
        resolved_at=n.resolved_at,
    )


class DjangoRepository:
    # =========================
    # ORDERS
    # =========================

    def _get_order(self, order_id: int) -> OrderRecord:
        o = Order.objects.select_related("product").filter(pk=order_id).first()
        if o is None:
            raise OrderNotFound(order_id)
        return order_to_record(o)

    async def get_order(self, order_id: int) -> OrderRecord:
        return await sync_to_async(self._get_order)(order_id)

    def _list_orders_for_participant(self, telegram_id: int, limit: int) -> List[OrderRecord]:
        qs = (
            Order.objects.select_related("product")
            .filter(Q(buyer__telegram_id=telegram_id) | Q(anon_temp_id__startswith=f"tg_{telegram_id}_"))
            .order_by("-created_at")[:limit]
        )
        return [order_to_record(o) for o in qs]

    async def list_orders_for_participant(self, telegram_id: int, limit: int = 10) -> List[OrderRecord]:
        return await sync_to_async(self._list_orders_for_participant)(telegram_id, limit)

    def _list_pending_orders(self, limit: int) -> List[OrderRecord]:
        qs = (
            Order.objects.select_related("product")
            .filter(status__in=[Order.Status.PENDING, Order.Status.PROCESSING])
            .order_by("-created_at")[:limit]
        )
        return [order_to_record(o) for o in qs]

    async def list_pending_orders(self, limit: int = 10) -> List[OrderRecord]:
        return await sync_to_async(self._list_pending_orders)(limit)

    def _create_order(
            self,
            draft: OrderDraft,
            buyer_id: Optional[int],
            order_type: OrderType,
            anon_temp_id: Optional[str],
    ) -> OrderRecord:
        q = draft.quantity
        with transaction.atomic():
            # shartli UPDATE: ikki xaridor oxirgi donani bir vaqtda olsa, faqat bittasi o'tadi
            updated = Product.objects.filter(
                pk=draft.product.id,
                is_active=True,
                stock_quantity__gte=q,
            ).update(
                stock_quantity=F("stock_quantity") - q,
                order_count=F("order_count") + q,
            )
            if not updated:
                product = Product.objects.filter(pk=draft.product.id).first()
                if product is None:
                    raise ProductNotFound(draft.product.id)
                raise OutOfStock(product.id, requested=q, available=product.stock_quantity)

            order = Order.objects.create(
                product_id=draft.product.id,
                buyer_id=buyer_id,
                full_name=draft.full_name,
                phone=draft.phone,
                address=draft.address,
                birthdate=draft.birthdate,
                quantity=q,
                total_amount=draft.total_amount,
                delivery_price=draft.delivery_price,
                order_type=OrderType(order_type).value,
                anon_temp_id=anon_temp_id,
            )
        return self._get_order(order.id)

    async def create_order(
            self,
            draft: OrderDraft,
            buyer_id: Optional[int] = None,
            order_type: OrderType = OrderType.TELEGRAM,
            anon_temp_id: Optional[str] = None,
    ) -> OrderRecord:
        return await sync_to_async(self._create_order)(draft, buyer_id, order_type, anon_temp_id)

    def _save_transition(self, order_id: int, expected: OrderState, new: OrderState) -> OrderRecord:
        filters = {"pk": order_id, "status": expected.status.value}
        for name in _FLAG_FIELDS:
            value = getattr(expected, name)
            if value is None:
                filters[f"{name}__isnull"] = True
            else:
                filters[name] = value

        updated = Order.objects.filter(**filters).update(
            status=new.status.value,
            is_agree=new.is_agree,
            is_client_went=new.is_client_went,
            is_client_claimed=new.is_client_claimed,
            pickup_address=new.pickup_address,
            seller_notes=new.seller_notes,
            client_notes=new.client_notes,
            updated_at=timezone.now(),
        )
        if not updated:
            if not Order.objects.filter(pk=order_id).exists():
                raise OrderNotFound(order_id)
            raise TransitionError("save", "buyurtma boshqa so'rov tomonidan o'zgartirilgan")
        return self._get_order(order_id)

    async def save_transition(self, order_id: int, expected: OrderState, new: OrderState) -> OrderRecord:
        return await sync_to_async(self._save_transition)(order_id, expected, new)

    # =========================
    # PRODUCTS
    # =========================

    def _get_product(self, product_id: int) -> ProductInfo:
        p = Product.objects.filter(pk=product_id, is_active=True, is_approved=True).first()
        if p is None:
            raise ProductNotFound(product_id)
        return product_to_info(p)

    async def get_product(self, product_id: int) -> ProductInfo:
        return await sync_to_async(self._get_product)(product_id)

    def _search_products(self, query: str, limit: int) -> List[ProductInfo]:
        qs = Product.objects.filter(is_active=True, is_approved=True)
        if query:
            qs = qs.filter(Q(name__icontains=query) | Q(description__icontains=query))
        return [product_to_info(p) for p in qs.order_by("-order_count", "-created_at")[:limit]]

    async def search_products(self, query: str, limit: int = 10) -> List[ProductInfo]:
        return await sync_to_async(self._search_products)(query, limit)

    def _approve_product(self, product_id: int) -> None:
        if not Product.objects.filter(pk=product_id).update(is_approved=True):
            raise ProductNotFound(product_id)

    async def approve_product(self, product_id: int) -> None:
        await sync_to_async(self._approve_product)(product_id)

    # =========================
    # ACCOUNTS
    # =========================

    def _get_account(self, account_id: int) -> Optional[AccountInfo]:
        a = Account.objects.filter(pk=account_id).first()
        return account_to_info(a) if a is not None else None

    async def get_account(self, account_id: int) -> Optional[AccountInfo]:
        return await sync_to_async(self._get_account)(account_id)

    def _account_by_telegram(self, telegram_id: int) -> Optional[AccountInfo]:
        a = Account.objects.filter(telegram_id=telegram_id).first()
        return account_to_info(a) if a is not None else None

    async def account_by_telegram(self, telegram_id: int) -> Optional[AccountInfo]:
        return await sync_to_async(self._account_by_telegram)(telegram_id)

    def _ensure_account(self, telegram_id: int, full_name: Optional[str], username: Optional[str]) -> AccountInfo:
        account, created = Account.objects.get_or_create(
            telegram_id=telegram_id,
            defaults={"full_name": full_name, "username": username},
        )
        if created:
            logger.info("New account registered telegram_id=%s", telegram_id)
        return account_to_info(account)

    async def ensure_account(self, telegram_id: int, full_name: Optional[str] = None,
                             username: Optional[str] = None) -> AccountInfo:
        return await sync_to_async(self._ensure_account)(telegram_id, full_name, username)

    def _account_chat_id(self, account_id: int) -> Optional[int]:
        return Account.objects.filter(pk=account_id).values_list("telegram_id", flat=True).first()

    async def account_chat_id(self, account_id: int) -> Optional[int]:
        return await sync_to_async(self._account_chat_id)(account_id)

    def _admin_chat_ids(self) -> List[int]:
        return list(
            Account.objects.filter(is_admin=True, telegram_id__isnull=False).values_list("telegram_id", flat=True)
        )

    async def admin_chat_ids(self) -> List[int]:
        return await sync_to_async(self._admin_chat_ids)()

    def _is_admin(self, telegram_id: int) -> bool:
        return Account.objects.filter(telegram_id=telegram_id, is_admin=True).exists()

    async def is_admin(self, telegram_id: int) -> bool:
        return await sync_to_async(self._is_admin)(telegram_id)

    def _mark_seller(self, account_id: int) -> None:
        if not Account.objects.filter(pk=account_id).update(is_seller=True):
            logger.warning("mark_seller: account %s not found", account_id)

    async def mark_seller(self, account_id: int) -> None:
        await sync_to_async(self._mark_seller)(account_id)

    # =========================
    # ADMIN NOTIFICATIONS
    # =========================

    def _create_notification(self, payload: NotificationPayload, title: str, content: str) -> NotificationRecord:
        n = AdminNotification.objects.create(
            type=payload.type,
            title=title[:255],
            content=content,
            data=dump_payload(payload),
        )
        return notification_to_record(n)

    async def create_notification(self, payload: NotificationPayload, title: str, content: str) -> NotificationRecord:
        return await sync_to_async(self._create_notification)(payload, title, content)

    def _get_notification(self, notification_id: int) -> NotificationRecord:
        n = AdminNotification.objects.filter(pk=notification_id).first()
        if n is None:
            raise NotificationNotFound(notification_id)
        return notification_to_record(n)

    async def get_notification(self, notification_id: int) -> NotificationRecord:
        return await sync_to_async(self._get_notification)(notification_id)

    def _count_pending_notifications(self) -> int:
        return AdminNotification.objects.filter(status=AdminNotification.Status.PENDING).count()

    async def count_pending_notifications(self) -> int:
        return await sync_to_async(self._count_pending_notifications)()

    def _resolve_notification(
            self,
            notification_id: int,
            status: NotificationStatus,
            response: Optional[str],
            actor_telegram_id: Optional[int],
    ) -> NotificationRecord:
        resolved_by_id = None
        if actor_telegram_id is not None:
            resolved_by_id = Account.objects.filter(telegram_id=actor_telegram_id).values_list("pk", flat=True).first()

        updated = AdminNotification.objects.filter(
            pk=notification_id,
            status=AdminNotification.Status.PENDING,
        ).update(
            status=NotificationStatus(status).value,
            admin_response=response,
            resolved_by_id=resolved_by_id,
            resolved_at=timezone.now(),
        )
        if not updated:
            current = self._get_notification(notification_id)
            raise TransitionError("resolve", f"murojaat allaqachon ko'rib chiqilgan ({current.status.value})")
        return self._get_notification(notification_id)

    async def resolve_notification(
            self,
            notification_id: int,
            status: NotificationStatus,
            response: Optional[str] = None,
            actor_telegram_id: Optional[int] = None,
    ) -> NotificationRecord:
        return await sync_to_async(self._resolve_notification)(notification_id, status, response, actor_telegram_id)
