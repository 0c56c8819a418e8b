# bot/storage.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from .capture import Builder

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ORDERING = "ordering"
    CONTACT_MESSAGE = "contact_message"
    SEARCHING = "searching"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    state: SessionState
    builder: Optional[Builder] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def step(self):
        return self.builder.step if self.builder is not None else None


class SessionStore:
    """
    Har bir ishtirokchi (Telegram user id) uchun bitta jarayondagi sessiya.
    Faqat xotirada: restartda barcha sessiyalar yo'qoladi.

    ttl_seconds > 0 bo'lsa, shuncha vaqt harakatsiz qolgan sessiya
    get() paytida o'chiriladi.
    """

    def __init__(self, ttl_seconds: int = 0, clock: Callable[[], datetime] = _utcnow) -> None:
        self._sessions: Dict[int, Session] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def _is_expired(self, session: Session) -> bool:
        if self._ttl_seconds <= 0:
            return False
        return (self._clock() - session.updated_at).total_seconds() > self._ttl_seconds

    def get(self, participant_id: int) -> Optional[Session]:
        session = self._sessions.get(participant_id)
        if session is None:
            return None
        if self._is_expired(session):
            logger.info("Session expired for participant=%s (state=%s)", participant_id, session.state.value)
            del self._sessions[participant_id]
            return None
        return session

    def set(self, participant_id: int, session: Session) -> None:
        session.updated_at = self._clock()
        self._sessions[participant_id] = session

    def delete(self, participant_id: int) -> None:
        if participant_id in self._sessions:
            del self._sessions[participant_id]

    def purge_expired(self) -> int:
        expired = [key for key, session in self._sessions.items() if self._is_expired(session)]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.info("Purged %s expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, participant_id: int) -> bool:
        return self.get(participant_id) is not None
