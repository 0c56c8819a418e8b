# bot/handlers/orders.py
import logging

from aiogram import Dispatcher, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import CallbackQuery, Message

from .. import texts
from ..deps import Deps
from ..exceptions import OrderNotFound, OutOfStock, TransitionError
from ..lifecycle import Action, allowed_actions, stage_label
from ..utils.formatting import esc

logger = logging.getLogger(__name__)

MY_ORDERS_LIMIT = 10


def parse_order_callback(data: str):
    """order:<action>:<id> -> (Action, order_id). Noto'g'ri bo'lsa ValueError."""
    prefix, raw_action, raw_id = (data or "").split(":", 2)
    if prefix != "order":
        raise ValueError(f"not an order callback: {data!r}")
    return Action(raw_action), int(raw_id)


def register_order_handlers(dp: Dispatcher, deps: Deps) -> None:
    conversation = deps.conversation
    coordinator = deps.coordinator
    repo = deps.repo

    async def _send_my_orders(message: Message, telegram_id: int):
        try:
            orders = await repo.list_orders_for_participant(telegram_id, limit=MY_ORDERS_LIMIT)
        except Exception as e:
            logger.exception("Failed to list orders for %s: %s", telegram_id, e)
            await message.answer(texts.GENERIC_FAILURE)
            return

        if not orders:
            await message.answer("📭 Sizda hali buyurtmalar yo'q.", reply_markup=texts.main_menu_kb())
            return

        await message.answer(f"📋 <b>Buyurtmalaringiz</b> ({len(orders)} ta):")
        for order in orders:
            actions = allowed_actions(order.state)
            if Action.CLIENT_WENT in actions:
                kb = texts.buyer_pickup_kb(order.id)
            elif Action.REORDER in actions:
                kb = texts.reorder_kb(order.id)
            else:
                kb = None
            await message.answer(texts.order_summary(order), reply_markup=kb)

    # =========================
    # COMMANDS
    # =========================

    @dp.message(CommandStart())
    async def cmd_start(message: Message, command: CommandObject):
        user = message.from_user
        try:
            await repo.ensure_account(user.id, full_name=user.full_name, username=user.username)
        except Exception as e:
            logger.exception("Failed to register account telegram_id=%s: %s", user.id, e)

        args = (command.args or "").strip()
        if args.startswith("product_"):
            try:
                product_id = int(args.split("_", 1)[1])
            except ValueError:
                await message.answer(texts.PRODUCT_NOT_FOUND)
                return
            reply = await conversation.product_card(product_id)
            if reply.photo:
                await deps.dispatcher.send_photo(message.chat.id, reply.photo, reply.text, reply_markup=reply.reply_markup)
            else:
                await message.answer(reply.text, reply_markup=reply.reply_markup)
            return

        is_admin = await coordinator.is_admin(user.id)
        await message.answer(
            texts.WELCOME.format(name=esc(user.first_name), site_url=deps.settings.site_url),
            reply_markup=texts.main_menu_kb(is_admin=is_admin),
        )

    @dp.message(Command("help"))
    async def cmd_help(message: Message):
        await message.answer(texts.HELP.format(site_url=deps.settings.site_url))

    @dp.message(Command("cancel"))
    async def cmd_cancel(message: Message):
        reply = conversation.cancel(message.from_user.id)
        await message.answer(reply.text, reply_markup=reply.reply_markup)

    @dp.message(Command("myorders"))
    async def cmd_my_orders(message: Message):
        await _send_my_orders(message, message.from_user.id)

    # =========================
    # MENU CALLBACKS
    # =========================

    @dp.callback_query(F.data == "my_orders")
    async def cb_my_orders(callback: CallbackQuery):
        await callback.answer()
        await _send_my_orders(callback.message, callback.from_user.id)

    @dp.callback_query(F.data == "search")
    async def cb_search(callback: CallbackQuery):
        await callback.answer()
        reply = conversation.start_search(callback.from_user.id)
        await callback.message.answer(reply.text, reply_markup=reply.reply_markup)

    @dp.callback_query(F.data == "contact")
    async def cb_contact(callback: CallbackQuery):
        await callback.answer()
        reply = conversation.start_contact(callback.from_user.id)
        await callback.message.answer(reply.text, reply_markup=reply.reply_markup)

    @dp.callback_query(F.data == "cancel_capture")
    async def cb_cancel_capture(callback: CallbackQuery):
        await callback.answer()
        reply = conversation.cancel(callback.from_user.id)
        try:
            await callback.message.edit_reply_markup(reply_markup=None)
        except TelegramBadRequest:
            pass
        await callback.message.answer(reply.text, reply_markup=reply.reply_markup)

    @dp.callback_query(F.data.startswith("buy:"))
    async def cb_buy(callback: CallbackQuery):
        try:
            product_id = int((callback.data or "").split(":", 1)[1])
        except (IndexError, ValueError):
            await callback.answer(texts.PRODUCT_NOT_FOUND, show_alert=True)
            return

        await callback.answer()
        reply = await conversation.start_order(callback.from_user.id, product_id)
        await callback.message.answer(reply.text, reply_markup=reply.reply_markup)

    # =========================
    # LIFECYCLE CALLBACKS
    # =========================

    @dp.callback_query(F.data.startswith("order:"))
    async def cb_order_action(callback: CallbackQuery):
        try:
            action, order_id = parse_order_callback(callback.data)
        except ValueError:
            await callback.answer("Noto'g'ri buyurtma ID.", show_alert=True)
            return

        actor_id = callback.from_user.id
        try:
            order = await coordinator.perform(order_id, action, actor_id=actor_id)
        except OrderNotFound:
            await callback.answer("Buyurtma topilmadi.", show_alert=True)
            return
        except TransitionError as e:
            logger.info("Order %s: %s rejected for actor=%s: %s", order_id, action.value, actor_id, e)
            await callback.answer(texts.ACTION_NOT_AVAILABLE, show_alert=True)
            return
        except OutOfStock:
            await callback.answer(texts.OUT_OF_STOCK, show_alert=True)
            return
        except Exception as e:
            logger.exception("Order %s: %s failed: %s", order_id, action.value, e)
            await callback.answer(texts.GENERIC_FAILURE, show_alert=True)
            return

        await callback.answer("✅")
        try:
            await callback.message.edit_reply_markup(reply_markup=None)
        except TelegramBadRequest:
            pass

        if action is Action.REORDER:
            await callback.message.answer(texts.order_created_for_buyer(order), reply_markup=texts.main_menu_kb())
        else:
            await callback.message.answer(f"📊 #{order.short_id}: {stage_label(order.state)}")

    # =========================
    # FREE TEXT -> SESSION
    # =========================

    @dp.message(F.text)
    async def handle_text(message: Message):
        user = message.from_user
        if user is None or user.is_bot:
            return

        reply = await conversation.handle_text(
            user.id,
            message.text,
            username=user.username,
            full_name=user.full_name,
        )
        if reply is None:
            await message.answer(
                "ℹ️ Buyruqni tanlang yoki /help ni bosing.",
                reply_markup=texts.main_menu_kb(),
            )
            return

        await message.answer(reply.text, reply_markup=reply.reply_markup)
