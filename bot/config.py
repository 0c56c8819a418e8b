# bot/config.py
import os
from dataclasses import dataclass, field
from typing import Set

from dotenv import load_dotenv

OVERRIDE_POLICIES = ("keep_flags", "reconcile")


@dataclass
class Settings:
    # Telegram
    tg_bot_token: str

    # Adminlar (users.is_admin dan tashqari, .env orqali)
    admin_ids: Set[int] = field(default_factory=set)

    # Sessiyalar: 0 = hech qachon eskirmaydi
    session_ttl_seconds: int = 0
    ask_birthdate: bool = True

    # Admin override: "keep_flags" | "reconcile"
    override_policy: str = "keep_flags"

    site_url: str = "https://globalmarketshop.netlify.app"
    debug: bool = False

    @property
    def session_ttl_enabled(self) -> bool:
        return self.session_ttl_seconds > 0


def _to_int(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_admin_ids(raw: str | None) -> Set[int]:
    ids = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if part.lstrip("-").isdigit():
            ids.add(int(part))
    return ids


def load_settings() -> Settings:
    load_dotenv()

    tg_bot_token = os.getenv("TG_BOT_TOKEN")
    if not tg_bot_token:
        raise RuntimeError("TG_BOT_TOKEN .env ichida ko'rsatilmagan!")

    override_policy = os.getenv("OVERRIDE_POLICY", "keep_flags").strip().lower()
    if override_policy not in OVERRIDE_POLICIES:
        raise RuntimeError(
            f"OVERRIDE_POLICY noto'g'ri: {override_policy!r} (keep_flags yoki reconcile)"
        )

    return Settings(
        tg_bot_token=tg_bot_token,
        admin_ids=parse_admin_ids(os.getenv("ADMIN_TG_IDS")),
        session_ttl_seconds=_to_int(os.getenv("SESSION_TTL_SECONDS")) or 0,
        ask_birthdate=os.getenv("ASK_BIRTHDATE", "True").lower() == "true",
        override_policy=override_policy,
        site_url=os.getenv("SITE_URL", "https://globalmarketshop.netlify.app"),
        debug=os.getenv("DEBUG", "False").lower() == "true",
    )
