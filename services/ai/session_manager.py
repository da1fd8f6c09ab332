"""
Session Manager Service

In-process registry of live conversations with TTL expiry. A session owns
its DialogueEngine (and therefore its form values and context), so sessions
are not serialized; they live as long as the process and their TTL allow.

Usage:
    from services.ai.session_manager import get_session_manager

    manager = get_session_manager()
    session = await manager.create_session(engine, sinks)
    session = await manager.get_session(session.id)
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from config.constants import MAX_LOCAL_SESSIONS, SESSION_TTL_MINUTES
from services.ai.collaborators import RecordingSinks
from services.ai.dialogue_engine import DialogueEngine
from services.voice.capture import SpeechCapture
from services.voice.playback import AudioOutbox
from utils.exceptions import SessionNotFoundError
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConversationSession:
    engine: DialogueEngine
    sinks: RecordingSinks
    capture: SpeechCapture = field(default_factory=SpeechCapture)
    audio: Optional[AudioOutbox] = None
    created_at: datetime = field(default_factory=datetime.now)
    expires_at: datetime = field(default_factory=lambda: datetime.now() + timedelta(minutes=SESSION_TTL_MINUTES))

    @property
    def id(self) -> str:
        return self.engine.session_id

    def is_expired(self) -> bool:
        return datetime.now() >= self.expires_at

    def touch(self, ttl_minutes: int = SESSION_TTL_MINUTES) -> None:
        self.expires_at = datetime.now() + timedelta(minutes=ttl_minutes)

    def close(self) -> None:
        """Silence the session: stop playback and listening, drop unfetched audio."""
        if self.engine.playback is not None:
            self.engine.playback.cancel_all()
        self.capture.stop()
        if self.audio is not None:
            self.audio.clear()


class SessionManager:
    """
    Holds conversations by id.

    Expired sessions are dropped lazily on access and in bulk by
    cleanup_expired(); when the registry is full the oldest session is
    evicted.
    """

    def __init__(self, ttl_minutes: int = SESSION_TTL_MINUTES, max_sessions: int = MAX_LOCAL_SESSIONS):
        self.ttl_minutes = ttl_minutes
        self.max_sessions = max_sessions
        self._sessions: Dict[str, ConversationSession] = {}
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return sum(1 for s in self._sessions.values() if not s.is_expired())

    async def create_session(
        self,
        engine: DialogueEngine,
        sinks: RecordingSinks,
        capture: Optional[SpeechCapture] = None,
        audio: Optional[AudioOutbox] = None,
    ) -> ConversationSession:
        session = ConversationSession(
            engine=engine,
            sinks=sinks,
            capture=capture or SpeechCapture(),
            audio=audio,
        )
        session.touch(self.ttl_minutes)
        async with self._lock:
            if len(self._sessions) >= self.max_sessions:
                await self._evict_locked()
            self._sessions[session.id] = session
        logger.debug(f"Created session {session.id}")
        return session

    async def get_session(self, session_id: str) -> ConversationSession:
        """
        Live session by id; extends its TTL.

        Raises:
            SessionNotFoundError: Unknown or expired id
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.is_expired():
            self._sessions.pop(session_id, None)
            session.close()
            raise SessionNotFoundError(session_id)
        session.touch(self.ttl_minutes)
        return session

    async def delete_session(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
        return session is not None

    async def cleanup_expired(self) -> int:
        """Remove expired sessions. Returns count removed."""
        async with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.is_expired()]
            for sid in expired:
                self._sessions.pop(sid).close()
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    async def _evict_locked(self) -> None:
        expired = [sid for sid, s in self._sessions.items() if s.is_expired()]
        for sid in expired:
            self._sessions.pop(sid).close()
        if len(self._sessions) >= self.max_sessions:
            oldest = min(self._sessions.values(), key=lambda s: s.created_at)
            self._sessions.pop(oldest.id).close()
            logger.warning(f"Session limit reached, evicted {oldest.id}")


_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """Get the process-wide SessionManager."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager()
    return _session_manager
