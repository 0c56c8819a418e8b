# bot/texts.py
"""Canned bot texts (HTML parse mode) and inline keyboards."""
from typing import Iterable, List, Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from .lifecycle import Action, progress, stage_label
from .models import OrderRecord, OrderStatus, ProductInfo
from .utils.formatting import esc, format_date, format_price

STATUS_EMOJI = {
    OrderStatus.PENDING: "⏳",
    OrderStatus.PROCESSING: "🔄",
    OrderStatus.COMPLETED: "✅",
    OrderStatus.CANCELLED: "❌",
}

STATUS_TEXT = {
    OrderStatus.PENDING: "Kutilmoqda",
    OrderStatus.PROCESSING: "Tayyorlanmoqda",
    OrderStatus.COMPLETED: "Bajarilgan",
    OrderStatus.CANCELLED: "Bekor qilingan",
}

NOTIFICATION_TYPE_TEXT = {
    "new_order": "Yangi buyurtma",
    "seller_application": "Sotuvchi arizasi",
    "product_approval": "Mahsulot tasdiqlash",
    "contact": "Murojaat",
}

ACTION_NOT_AVAILABLE = "⚠️ Bu amal hozir mavjud emas."
GENERIC_FAILURE = "❌ Xatolik yuz berdi. Iltimos, qayta urinib ko'ring."
ORDER_FAILURE = "❌ Buyurtmani yaratishda xatolik yuz berdi. Qaytadan urinib ko'ring."
OUT_OF_STOCK = "❌ Afsuski, mahsulot omborda yetarli emas. Buyurtma yaratilmadi."
PRODUCT_UNAVAILABLE = "❌ Bu mahsulot hozirda mavjud emas."
PRODUCT_NOT_FOUND = "❌ Mahsulot topilmadi."
ACCESS_DENIED = "⛔ Ruxsat yo'q."
CAPTURE_CANCELLED = "❌ Jarayon bekor qilindi."

# photo caption 1024 belgidan oshmasin
DESCRIPTION_PREVIEW = 500

WELCOME = (
    "👋 Salom {name}! GlobalMarket botiga xush kelibsiz!\n\n"
    "🛒 Mahsulotlarni ko'rish va sotib olish\n"
    "🔍 Mahsulot qidirish\n"
    "📞 Murojaat yuborish\n\n"
    "📋 Buyurtmalaringizni kuzatish uchun tugmalardan foydalaning.\n\n"
    "🌐 Sayt: {site_url}"
)

HELP = (
    "❓ <b>Yordam</b>\n\n"
    "/start - Bosh menyu\n"
    "/myorders - Buyurtmalarim\n"
    "/cancel - Joriy jarayonni bekor qilish\n"
    "/help - Yordam\n\n"
    "<b>Admin buyruqlari:</b>\n"
    "/admin - Admin panel\n"
    "/orders - Yangi buyurtmalar\n"
    "/setstatus &lt;id&gt; &lt;processing|completed|cancelled&gt;\n"
    "/reply &lt;murojaat_id&gt; &lt;javob&gt;\n\n"
    "🌐 Sayt: {site_url}"
)

SEARCH_PROMPT = "🔍 Mahsulot nomini yozing:"
CONTACT_PROMPT = "💬 <b>Murojaat yuborish</b>\n\nXabaringizni yozing. Biz sizga tez orada javob beramiz:"
CONTACT_SENT = "✅ Murojaatingiz muvaffaqiyatli yuborildi!\n\nBiz sizga tez orada javob beramiz."


# =========================
# KEYBOARDS
# =========================

def _kb(rows: List[List[InlineKeyboardButton]]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=rows)


def order_callback(action: Action, order_id: int) -> str:
    return f"order:{Action(action).value}:{order_id}"


def override_callback(status: OrderStatus, order_id: int) -> str:
    return f"override:{OrderStatus(status).value}:{order_id}"


def main_menu_kb(is_admin: bool = False) -> InlineKeyboardMarkup:
    rows = [
        [
            InlineKeyboardButton(text="🔍 Qidirish", callback_data="search"),
            InlineKeyboardButton(text="💬 Murojaat", callback_data="contact"),
        ],
        [InlineKeyboardButton(text="📋 Buyurtmalarim", callback_data="my_orders")],
    ]
    if is_admin:
        rows.append([InlineKeyboardButton(text="👑 Admin Panel", callback_data="admin_panel")])
    return _kb(rows)


def cancel_capture_kb() -> InlineKeyboardMarkup:
    return _kb([[InlineKeyboardButton(text="❌ Bekor qilish", callback_data="cancel_capture")]])


def seller_decision_kb(order_id: int) -> InlineKeyboardMarkup:
    return _kb([[
        InlineKeyboardButton(text="✅ Qabul qilish", callback_data=order_callback(Action.AGREE, order_id)),
        InlineKeyboardButton(text="❌ Rad etish", callback_data=order_callback(Action.REJECT, order_id)),
    ]])


def buyer_pickup_kb(order_id: int) -> InlineKeyboardMarkup:
    return _kb([[
        InlineKeyboardButton(text="🚶 Bordim", callback_data=order_callback(Action.CLIENT_WENT, order_id)),
        InlineKeyboardButton(text="❌ Bormadim", callback_data=order_callback(Action.CLIENT_NOT_WENT, order_id)),
    ]])


def seller_handover_kb(order_id: int) -> InlineKeyboardMarkup:
    return _kb([[
        InlineKeyboardButton(text="✅ Berildi", callback_data=order_callback(Action.PRODUCT_GIVEN, order_id)),
        InlineKeyboardButton(text="❌ Berilmadi", callback_data=order_callback(Action.PRODUCT_NOT_GIVEN, order_id)),
    ]])


def reorder_kb(order_id: int) -> InlineKeyboardMarkup:
    return _kb([[InlineKeyboardButton(text="🔁 Qayta buyurtma", callback_data=order_callback(Action.REORDER, order_id))]])


def admin_override_kb(order_id: int) -> InlineKeyboardMarkup:
    return _kb([
        [
            InlineKeyboardButton(text="🔄 Jarayonda", callback_data=override_callback(OrderStatus.PROCESSING, order_id)),
            InlineKeyboardButton(text="✅ Bajarildi", callback_data=override_callback(OrderStatus.COMPLETED, order_id)),
        ],
        [InlineKeyboardButton(text="❌ Bekor qilish", callback_data=override_callback(OrderStatus.CANCELLED, order_id))],
    ])


def inbox_kb(notification_id: int) -> InlineKeyboardMarkup:
    return _kb([[
        InlineKeyboardButton(text="✅ Tasdiqlash", callback_data=f"inbox:approve:{notification_id}"),
        InlineKeyboardButton(text="❌ Rad etish", callback_data=f"inbox:reject:{notification_id}"),
    ]])


def product_card_kb(product_id: int, site_url: str = "") -> InlineKeyboardMarkup:
    rows = [[InlineKeyboardButton(text="🛒 Sotib olish", callback_data=f"buy:{product_id}")]]
    if site_url:
        rows.append([InlineKeyboardButton(text="🌐 Saytda ko'rish", url=f"{site_url.rstrip('/')}/product/{product_id}")])
    return _kb(rows)


def products_kb(products: Iterable[ProductInfo]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=f"{p.name} - {format_price(p.price)}", callback_data=f"buy:{p.id}")]
        for p in products
    ]
    rows.append([InlineKeyboardButton(text="🔍 Qayta qidirish", callback_data="search")])
    return _kb(rows)


def product_card(product: ProductInfo) -> str:
    text = (
        f"📦 <b>{esc(product.name)}</b>\n\n"
        f"💰 <b>Narx:</b> {format_price(product.price)}\n"
        f"📊 <b>Mavjud:</b> {product.stock_quantity} dona\n"
        f"🛒 <b>Buyurtmalar:</b> {product.order_count} marta\n"
    )
    if product.description:
        text += f"\n📝 <b>Tavsif:</b>\n{esc(product.description[:DESCRIPTION_PREVIEW])}\n"
    if product.has_delivery:
        text += f"\n🚚 <b>Yetkazib berish:</b> {format_price(product.effective_delivery_price)}\n"
    return text


# =========================
# ORDER TEXTS
# =========================

def _order_head(order: OrderRecord) -> str:
    return f"🆔 #{order.short_id}\n📦 {esc(order.product_name)}\n"


def _notes_line(notes: Optional[str]) -> str:
    return f"💬 Izoh: {esc(notes)}\n" if notes else ""


def order_created_for_buyer(order: OrderRecord) -> str:
    text = "✅ <b>Buyurtma muvaffaqiyatli qabul qilindi!</b>\n\n"
    text += f"🆔 Buyurtma raqami: #{order.short_id}\n"
    text += f"📦 Mahsulot: {esc(order.product_name)}\n"
    text += f"📊 Miqdor: {order.quantity} dona\n"
    text += f"💰 Jami summa: {format_price(order.total_amount)}\n"
    text += f"👤 Mijoz: {esc(order.full_name)}\n"
    if order.birthdate:
        text += f"📅 Tug'ilgan sana: {esc(order.birthdate)}\n"
    text += f"📞 Telefon: {esc(order.phone)}\n"
    text += f"📍 Manzil: {esc(order.address)}\n\n"
    text += "⏰ Sotuvchi javobini kutib turing!"
    return text


def new_order_for_admins(order: OrderRecord) -> str:
    return (
        "🔔 <b>Yangi buyurtma!</b>\n\n"
        f"{_order_head(order)}"
        f"👤 {esc(order.full_name)}\n"
        f"📞 {esc(order.phone)}\n"
        f"📍 {esc(order.address)}\n"
        f"📊 {order.quantity} dona\n"
        f"💰 {format_price(order.total_amount)}\n"
        f"📅 {format_date(order.created_at)}"
    )


def new_order_for_seller(order: OrderRecord) -> str:
    return (
        "🛒 <b>Sizning mahsulotingizga buyurtma!</b>\n\n"
        f"{_order_head(order)}"
        f"📊 Miqdor: {order.quantity} dona\n"
        f"💰 {format_price(order.total_amount)}\n"
        f"👤 {esc(order.full_name)}\n"
        f"📞 {esc(order.phone)}\n\n"
        "Buyurtmani qabul qilasizmi?"
    )


def accepted_for_buyer(order: OrderRecord) -> str:
    text = "✅ <b>Buyurtmangiz sotuvchi tomonidan qabul qilindi!</b>\n\n" + _order_head(order)
    if order.pickup_address:
        text += f"📍 Olib ketish manzili: {esc(order.pickup_address)}\n"
    text += _notes_line(order.seller_notes)
    text += "\nMahsulotni olish uchun bordingizmi?"
    return text


def rejected_for_buyer(order: OrderRecord) -> str:
    return (
        "❌ <b>Buyurtmangiz sotuvchi tomonidan rad etildi.</b>\n\n"
        + _order_head(order)
        + _notes_line(order.seller_notes)
    )


def buyer_went_for_seller(order: OrderRecord) -> str:
    return (
        "🚶 <b>Mijoz mahsulotni olish uchun keldi!</b>\n\n"
        + _order_head(order)
        + f"👤 {esc(order.full_name)}\n📞 {esc(order.phone)}\n"
        + _notes_line(order.client_notes)
        + "\nMahsulot topshirildimi?"
    )


def buyer_did_not_go_for_seller(order: OrderRecord) -> str:
    return (
        "⚠️ <b>Mijoz bormaganini bildirdi.</b>\n\n"
        + _order_head(order)
        + f"👤 {esc(order.full_name)}\n📞 {esc(order.phone)}\n"
        + _notes_line(order.client_notes)
    )


def product_given_for_buyer(order: OrderRecord) -> str:
    return (
        "🎉 <b>Buyurtma yakunlandi!</b>\n\n"
        + _order_head(order)
        + "Xaridingiz uchun rahmat!"
    )


def product_not_given_for_buyer(order: OrderRecord) -> str:
    return (
        "😔 <b>Mahsulot topshirilmadi, buyurtma bekor qilindi.</b>\n\n"
        + _order_head(order)
        + _notes_line(order.seller_notes)
    )


def status_changed_for_buyer(order: OrderRecord) -> str:
    text = f"{STATUS_EMOJI[order.status]} <b>Buyurtma holati o'zgardi!</b>\n\n"
    text += _order_head(order)
    text += f"📊 Yangi holat: <b>{STATUS_TEXT[order.status]}</b>\n"
    if order.status is OrderStatus.COMPLETED:
        text += "\n🎉 Buyurtmangiz tayyor!"
    elif order.status is OrderStatus.PROCESSING:
        text += "\n⏳ Buyurtmangiz tayyorlanmoqda..."
    elif order.status is OrderStatus.CANCELLED:
        text += "\n😔 Buyurtmangiz bekor qilindi. Ma'lumot uchun qo'ng'iroq qiling."
    return text


def order_summary(order: OrderRecord) -> str:
    return (
        f"{STATUS_EMOJI[order.status]} <b>#{order.short_id}</b>\n"
        f"📦 {esc(order.product_name)}\n"
        f"💰 {format_price(order.total_amount)}\n"
        f"📊 {stage_label(order.state)} ({progress(order.state):.0f}%)\n"
        f"📅 {format_date(order.created_at)}"
    )


def inbox_item_for_admins(notification_id: int, kind: str, title: str, content: str,
                          username: Optional[str] = None, phone: Optional[str] = None) -> str:
    text = f"🔔 <b>{NOTIFICATION_TYPE_TEXT.get(kind, 'Xabar')}</b> (#{notification_id})\n\n"
    text += f"📝 {esc(title)}\n"
    text += f"💬 {esc(content)}\n"
    if username or phone:
        text += f"👤 @{esc(username)}\n" if username else "👤 -\n"
        text += f"📞 {esc(phone or '-')}\n"
    if kind == "contact":
        text += f"\nJavob: /reply {notification_id} &lt;matn&gt;"
    return text


def contact_reply_for_user(response: str) -> str:
    return f"📩 <b>Murojaatingizga javob:</b>\n\n{esc(response)}"
