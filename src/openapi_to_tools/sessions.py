"""
Registry of live transport sessions.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    session_id: str
    created_at: datetime = field(default_factory=_utcnow)
    outbox: "asyncio.Queue[Any]" = field(default_factory=asyncio.Queue)


class SessionRegistry:
    """Maps session ids to their live channels.

    Mutations never await, so they are atomic on the event loop and the
    removal in ``open_session`` cannot be interrupted by cancellation.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def ids(self) -> List[str]:
        return list(self._sessions)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def register(self, session: Session) -> Session:
        if session.session_id in self._sessions:
            raise ValueError(f"Session already registered: {session.session_id}")
        self._sessions[session.session_id] = session
        logger.info("Session opened: %s", session.session_id)
        return session

    def remove(self, session_id: str) -> bool:
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("Session closed: %s", session_id)
        return removed

    def deliver(self, session_id: str, message: Any) -> bool:
        """Queue a message for a session; False if no such session is live."""
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("No active session found with id %s", session_id)
            return False
        session.outbox.put_nowait(message)
        return True

    @asynccontextmanager
    async def open_session(self, session_id: Optional[str] = None) -> AsyncIterator[Session]:
        """Register a session for the lifetime of the block.

        The session is removed when the block exits for any reason, including
        an exception from the connection or cancellation of the serving task.
        """
        session = self.register(Session(session_id or uuid.uuid4().hex))
        try:
            yield session
        finally:
            self.remove(session.session_id)
