"""In-memory chat session model."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

ChatId = int | str


class SessionPhase(StrEnum):
    """Phase of a live session. A missing session is the implicit third phase."""

    AWAITING_CREDENTIAL = "awaiting_credential"
    ACTIVE = "active"


class Role(StrEnum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """Single message in a conversation history."""

    role: Role
    text: str


@dataclass(frozen=True)
class ChatSession:
    """Immutable snapshot of one chat's conversation state."""

    chat_id: ChatId
    phase: SessionPhase
    last_activity: datetime
    created_at: datetime
    credential: str = field(default="", repr=False)
    history: tuple[Turn, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE

    @property
    def turn_count(self) -> int:
        return len(self.history)

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Whether the last activity lies further back than the expiry window."""
        return now - self.last_activity > ttl
