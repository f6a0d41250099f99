"""In-process store for per-chat conversation sessions."""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import structlog

from chatbridge.core.exceptions import (
    InvalidCredentialFormatError,
    InvalidSessionStateError,
    SessionAlreadyExistsError,
    SessionNotFoundError,
)
from chatbridge.models.chat_session import ChatId, ChatSession, Role, SessionPhase, Turn

logger = structlog.get_logger()

Clock = Callable[[], datetime]

DEFAULT_SESSION_TTL = timedelta(minutes=30)


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(UTC)


class SessionStore:
    """Single source of truth for session existence and state.

    Entries are immutable ``ChatSession`` snapshots replaced on every write.
    Expiry is lazy: any entry whose last activity is older than ``ttl`` is
    treated as absent by every operation, whether or not a sweep removed it.
    All read-modify-write sequences run under one store-wide lock, and no
    method awaits anything else while holding it.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Clock = utc_now,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[ChatId, ChatSession] = {}
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _live(self, chat_id: ChatId, now: datetime) -> ChatSession | None:
        """Return the entry for chat_id unless it is missing or expired."""
        session = self._sessions.get(chat_id)
        if session is None or session.is_expired(now, self._ttl):
            return None
        return session

    async def create(self, chat_id: ChatId) -> ChatSession:
        """Start a session awaiting a credential.

        Raises:
            SessionAlreadyExistsError: a non-expired session exists.
        """
        async with self._lock:
            now = self._clock()
            if self._live(chat_id, now) is not None:
                raise SessionAlreadyExistsError()
            session = ChatSession(
                chat_id=chat_id,
                phase=SessionPhase.AWAITING_CREDENTIAL,
                last_activity=now,
                created_at=now,
            )
            self._sessions[chat_id] = session
        logger.info("Session created", chat_id=chat_id)
        return session

    async def get(self, chat_id: ChatId) -> ChatSession | None:
        """Return the live session for chat_id, or None if absent or expired."""
        async with self._lock:
            return self._live(chat_id, self._clock())

    async def touch(self, chat_id: ChatId) -> None:
        """Refresh last activity. No-op when the session is absent."""
        async with self._lock:
            now = self._clock()
            session = self._live(chat_id, now)
            if session is not None:
                self._sessions[chat_id] = replace(session, last_activity=now)

    async def set_credential(self, chat_id: ChatId, credential: str) -> ChatSession:
        """Store a validated credential and activate the session.

        Raises:
            InvalidCredentialFormatError: credential is empty.
            SessionNotFoundError: no live session.
            InvalidSessionStateError: session is already active.
        """
        if not credential:
            raise InvalidCredentialFormatError()
        async with self._lock:
            now = self._clock()
            session = self._live(chat_id, now)
            if session is None:
                raise SessionNotFoundError()
            if session.phase is not SessionPhase.AWAITING_CREDENTIAL:
                raise InvalidSessionStateError("Session already holds a credential")
            session = replace(
                session,
                phase=SessionPhase.ACTIVE,
                credential=credential,
                last_activity=now,
            )
            self._sessions[chat_id] = session
        logger.info("Session activated", chat_id=chat_id)
        return session

    async def append_turn(self, chat_id: ChatId, role: Role, text: str) -> ChatSession:
        """Append a turn to the history and return the updated snapshot.

        Alternation of roles is the caller's responsibility.

        Raises:
            SessionNotFoundError: no live session.
        """
        async with self._lock:
            session = self._live(chat_id, self._clock())
            if session is None:
                raise SessionNotFoundError()
            session = replace(session, history=(*session.history, Turn(role, text)))
            self._sessions[chat_id] = session
            return session

    async def delete(self, chat_id: ChatId, created_at: datetime | None = None) -> bool:
        """Remove the session. Returns whether a live session was removed.

        With ``created_at`` only the session started at that instant is
        removed; a newer session for the same chat is left alone.
        """
        async with self._lock:
            current = self._sessions.get(chat_id)
            if created_at is not None and (
                current is None or current.created_at != created_at
            ):
                return False
            session = self._sessions.pop(chat_id, None)
            removed = session is not None and not session.is_expired(
                self._clock(), self._ttl
            )
        if removed:
            logger.info("Session deleted", chat_id=chat_id)
        return removed

    async def sweep_expired(self, now: datetime | None = None) -> int:
        """Drop every expired entry and return how many were removed."""
        async with self._lock:
            now = now or self._clock()
            expired = [
                chat_id
                for chat_id, session in self._sessions.items()
                if session.is_expired(now, self._ttl)
            ]
            for chat_id in expired:
                del self._sessions[chat_id]
        if expired:
            logger.info("Expired sessions swept", count=len(expired))
        return len(expired)

    async def count(self) -> int:
        """Number of live (non-expired) sessions."""
        async with self._lock:
            now = self._clock()
            return sum(
                1 for session in self._sessions.values() if not session.is_expired(now, self._ttl)
            )
