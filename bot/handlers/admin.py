# bot/handlers/admin.py
import logging

from aiogram import Dispatcher, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from .. import texts
from ..deps import Deps
from ..exceptions import NotificationNotFound, OrderNotFound, PermissionDenied, TransitionError
from ..lifecycle import OVERRIDE_TARGETS
from ..models import OrderStatus
from ..utils.formatting import esc

logger = logging.getLogger(__name__)

PENDING_ORDERS_LIMIT = 10


def register_admin_handlers(dp: Dispatcher, deps: Deps) -> None:
    coordinator = deps.coordinator
    inbox = deps.inbox
    repo = deps.repo

    async def _override(order_id: int, raw_status: str, actor_id: int) -> str:
        """Natija matnini qaytaradi (callback alert yoki xabar uchun)."""
        try:
            order = await coordinator.admin_override(order_id, raw_status, actor_id)
        except PermissionDenied:
            return texts.ACCESS_DENIED
        except OrderNotFound:
            return "❌ Buyurtma topilmadi."
        except TransitionError as e:
            logger.info("Override %s -> %s rejected: %s", order_id, raw_status, e)
            return texts.ACTION_NOT_AVAILABLE
        except Exception as e:
            logger.exception("Override %s -> %s failed: %s", order_id, raw_status, e)
            return texts.GENERIC_FAILURE
        return f"✅ #{order.short_id}: {texts.STATUS_TEXT[order.status]}"

    # =========================
    # COMMANDS
    # =========================

    async def _admin_panel(message: Message, user_id: int):
        if not await coordinator.is_admin(user_id):
            await message.answer(texts.ACCESS_DENIED)
            return

        try:
            orders = await repo.list_pending_orders(limit=PENDING_ORDERS_LIMIT)
            pending_notifications = await repo.count_pending_notifications()
        except Exception as e:
            logger.exception("Admin panel failed: %s", e)
            await message.answer(texts.GENERIC_FAILURE)
            return

        await message.answer(
            "👑 <b>Admin Panel</b>\n\n"
            f"📦 Ochiq buyurtmalar: {len(orders)}\n"
            f"🔔 Ko'rib chiqilmagan murojaatlar: {pending_notifications}\n\n"
            "/orders - Yangi buyurtmalar\n"
            "/setstatus &lt;id&gt; &lt;processing|completed|cancelled&gt;\n"
            "/reply &lt;murojaat_id&gt; &lt;javob&gt;"
        )

    @dp.message(Command("admin"))
    async def cmd_admin(message: Message):
        await _admin_panel(message, message.from_user.id)

    @dp.callback_query(F.data == "admin_panel")
    async def cb_admin_panel(callback: CallbackQuery):
        await callback.answer()
        await _admin_panel(callback.message, callback.from_user.id)

    @dp.message(Command("orders"))
    async def cmd_orders(message: Message):
        if not await coordinator.is_admin(message.from_user.id):
            await message.answer(texts.ACCESS_DENIED)
            return

        try:
            orders = await repo.list_pending_orders(limit=PENDING_ORDERS_LIMIT)
        except Exception as e:
            logger.exception("Failed to list pending orders: %s", e)
            await message.answer(texts.GENERIC_FAILURE)
            return

        if not orders:
            await message.answer("📭 Yangi buyurtmalar yo'q.")
            return

        for order in orders:
            await message.answer(texts.order_summary(order), reply_markup=texts.admin_override_kb(order.id))

    @dp.message(Command("setstatus"))
    async def cmd_set_status(message: Message, command: CommandObject):
        parts = (command.args or "").split()
        allowed = "|".join(sorted(s.value for s in OVERRIDE_TARGETS))
        if len(parts) != 2 or not parts[0].isdigit():
            await message.answer(f"Format: /setstatus &lt;id&gt; &lt;{allowed}&gt;")
            return

        result = await _override(int(parts[0]), parts[1].lower(), message.from_user.id)
        await message.answer(result)

    @dp.message(Command("reply"))
    async def cmd_reply(message: Message, command: CommandObject):
        parts = (command.args or "").split(maxsplit=1)
        if len(parts) != 2 or not parts[0].isdigit():
            await message.answer("Format: /reply &lt;murojaat_id&gt; &lt;javob&gt;")
            return

        try:
            await inbox.resolve(int(parts[0]), approve=True, actor_id=message.from_user.id, response=parts[1])
        except PermissionDenied:
            await message.answer(texts.ACCESS_DENIED)
            return
        except NotificationNotFound:
            await message.answer("❌ Murojaat topilmadi.")
            return
        except TransitionError as e:
            await message.answer(f"⚠️ {esc(e.reason)}")
            return
        except Exception as e:
            logger.exception("Reply to notification %s failed: %s", parts[0], e)
            await message.answer(texts.GENERIC_FAILURE)
            return

        await message.answer("✅ Javob yuborildi.")

    # =========================
    # CALLBACKS
    # =========================

    @dp.callback_query(F.data.startswith("override:"))
    async def cb_override(callback: CallbackQuery):
        try:
            _, raw_status, raw_id = (callback.data or "").split(":", 2)
            order_id = int(raw_id)
            OrderStatus(raw_status)
        except ValueError:
            await callback.answer("Noto'g'ri buyurtma ID.", show_alert=True)
            return

        result = await _override(order_id, raw_status, callback.from_user.id)
        await callback.answer(result, show_alert=True)
        if result.startswith("✅"):
            try:
                await callback.message.edit_reply_markup(reply_markup=None)
            except TelegramBadRequest:
                pass

    @dp.callback_query(F.data.startswith("inbox:"))
    async def cb_inbox(callback: CallbackQuery):
        try:
            _, decision, raw_id = (callback.data or "").split(":", 2)
            notification_id = int(raw_id)
        except ValueError:
            await callback.answer("Noto'g'ri ID.", show_alert=True)
            return
        if decision not in ("approve", "reject"):
            await callback.answer("Noto'g'ri amal.", show_alert=True)
            return

        try:
            item = await inbox.resolve(notification_id, approve=decision == "approve", actor_id=callback.from_user.id)
        except PermissionDenied:
            await callback.answer(texts.ACCESS_DENIED, show_alert=True)
            return
        except NotificationNotFound:
            await callback.answer("❌ Murojaat topilmadi.", show_alert=True)
            return
        except TransitionError as e:
            await callback.answer(f"⚠️ {e.reason}", show_alert=True)
            return
        except Exception as e:
            logger.exception("Inbox resolve %s failed: %s", notification_id, e)
            await callback.answer(texts.GENERIC_FAILURE, show_alert=True)
            return

        await callback.answer(f"✅ {item.status.value}")
        try:
            await callback.message.edit_reply_markup(reply_markup=None)
        except TelegramBadRequest:
            pass
