"""Session management for per-user conversation state"""

import asyncio
import uuid
from typing import Dict, Optional, Any
from datetime import datetime
from travel_agent.config import settings
from travel_agent.core.errors import ConversationConflictError, SessionNotFoundError
from travel_agent.models.chat import ConversationState, Message
import logging

logger = logging.getLogger(__name__)


class UserSession:
    """Represents a user's chat session"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.created_at = datetime.now()
        self.last_accessed = datetime.now()
        self.conversation = ConversationState()

    def touch(self):
        """Update last accessed time"""
        self.last_accessed = datetime.now()

    @property
    def age_minutes(self) -> float:
        """Get session age in minutes"""
        return (datetime.now() - self.created_at).total_seconds() / 60

    @property
    def idle_minutes(self) -> float:
        """Get idle time in minutes"""
        return (datetime.now() - self.last_accessed).total_seconds() / 60

    def summary(self) -> Dict[str, Any]:
        """Public view of the session and its current chat"""
        return {
            "session_id": self.session_id,
            "chat_id": self.conversation.chat_id,
            "message_count": len(self.conversation.messages),
            "version": self.conversation.version,
            "created_at": self.created_at.isoformat(),
            "age_minutes": round(self.age_minutes, 2),
            "idle_minutes": round(self.idle_minutes, 2),
        }


class SessionManager:
    """Manages chat sessions for users"""

    _instance: Optional["SessionManager"] = None

    def __new__(cls):
        """Implements the singleton pattern for the SessionManager."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initializes the session manager's state."""
        if not hasattr(self, "_initialized"):
            self._initialized = True
            self._sessions: Dict[str, UserSession] = {}
            self._lock = asyncio.Lock()
            self._cleanup_task: Optional[asyncio.Task] = None
            self.session_timeout_minutes = settings.session_timeout_minutes
            self.idle_timeout_minutes = settings.idle_timeout_minutes

    async def start(self):
        """Start session manager and cleanup task"""
        if not self._cleanup_task:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Session manager started")

    async def stop(self):
        """Stop session manager and drop all sessions"""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        async with self._lock:
            self._sessions.clear()

        logger.info("Session manager stopped")

    async def get_or_create_session(
        self, session_id: Optional[str] = None
    ) -> UserSession:
        """Get existing session or create new one"""
        async with self._lock:
            if not session_id:
                session_id = str(uuid.uuid4())

            if session_id in self._sessions:
                session = self._sessions[session_id]
                session.touch()
                logger.debug(f"Reusing session {session_id}")
                return session

            logger.info(f"Creating new session {session_id}")
            session = UserSession(session_id)
            self._sessions[session_id] = session
            return session

    async def get_session(self, session_id: str) -> Optional[UserSession]:
        """Get existing session by ID"""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session:
                session.touch()
            return session

    async def destroy_session(self, session_id: str) -> bool:
        """Destroy a specific session; False if it did not exist"""
        async with self._lock:
            if self._sessions.pop(session_id, None) is None:
                return False
            logger.info(f"Destroyed session {session_id}")
            return True

    # --- Conversation state ---

    async def append_message(
        self,
        session_id: str,
        message: Message,
        expected_version: Optional[int] = None,
    ) -> ConversationState:
        """
        Replace the session's conversation with one that has `message` appended.

        With `expected_version`, the append only succeeds if nobody else has
        replaced the conversation since that version was read.
        """
        async with self._lock:
            session = self._require(session_id)
            current = session.conversation
            if expected_version is not None and current.version != expected_version:
                raise ConversationConflictError(expected_version, current.version)
            session.conversation = current.appended(message)
            session.touch()
            return session.conversation

    async def reset_conversation(self, session_id: str) -> ConversationState:
        """Start a new chat: fresh chat id, empty history."""
        async with self._lock:
            session = self._require(session_id)
            old_chat_id = session.conversation.chat_id
            session.conversation = session.conversation.reset()
            session.touch()
            logger.info(
                f"Session {session_id} reset chat {old_chat_id} -> {session.conversation.chat_id}"
            )
            return session.conversation

    async def get_conversation(self, session_id: str) -> ConversationState:
        """Current conversation snapshot for a session."""
        async with self._lock:
            return self._require(session_id).conversation

    def _require(self, session_id: str) -> UserSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def _cleanup_loop(self):
        """Background task to clean up expired sessions"""
        while True:
            try:
                await asyncio.sleep(60)  # Check every minute
                await self._cleanup_expired_sessions()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cleanup loop: {e}")

    async def _cleanup_expired_sessions(self):
        """Remove expired or idle sessions"""
        async with self._lock:
            expired_sessions = [
                session_id
                for session_id, session in self._sessions.items()
                if session.age_minutes > self.session_timeout_minutes
                or session.idle_minutes > self.idle_timeout_minutes
            ]

            for session_id in expired_sessions:
                logger.info(f"Cleaning up expired session {session_id}")
                del self._sessions[session_id]

    @property
    def active_sessions(self) -> int:
        """Get count of active sessions"""
        return len(self._sessions)

    def get_session_info(self) -> Dict[str, Any]:
        """Get information about all sessions"""
        return {
            "active_sessions": self.active_sessions,
            "sessions": [session.summary() for session in self._sessions.values()],
        }


# Global instance
session_manager = SessionManager()
