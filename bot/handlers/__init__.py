# bot/handlers/__init__.py
from aiogram import Dispatcher

from .admin import register_admin_handlers
from .orders import register_order_handlers
from ..deps import Deps


def register_all_handlers(dp: Dispatcher, deps: Deps) -> None:
    # admin buyruqlari catch-all text handlerdan oldin turishi kerak
    register_admin_handlers(dp, deps)
    register_order_handlers(dp, deps)
