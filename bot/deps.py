# bot/deps.py
from dataclasses import dataclass

from aiogram import Bot

from .config import Settings
from .conversation import Conversation
from .coordinator import OrderCoordinator
from .dispatcher import NotificationDispatcher
from .inbox import AdminInbox
from .notifier import CrossPartyNotifier
from .storage import SessionStore


@dataclass
class Deps:
    settings: Settings
    repo: object
    sessions: SessionStore
    dispatcher: NotificationDispatcher
    notifier: CrossPartyNotifier
    coordinator: OrderCoordinator
    inbox: AdminInbox
    conversation: Conversation


def build_deps(bot: Bot, settings: Settings, repo) -> Deps:
    dispatcher = NotificationDispatcher(bot)
    notifier = CrossPartyNotifier(dispatcher, repo, extra_admin_ids=settings.admin_ids)
    coordinator = OrderCoordinator(
        repo,
        notifier,
        override_policy=settings.override_policy,
        admin_ids=settings.admin_ids,
    )
    inbox = AdminInbox(repo, notifier, coordinator)
    sessions = SessionStore(ttl_seconds=settings.session_ttl_seconds)
    conversation = Conversation(
        sessions, coordinator, repo, inbox,
        ask_birthdate=settings.ask_birthdate,
        site_url=settings.site_url,
    )

    return Deps(
        settings=settings,
        repo=repo,
        sessions=sessions,
        dispatcher=dispatcher,
        notifier=notifier,
        coordinator=coordinator,
        inbox=inbox,
        conversation=conversation,
    )
