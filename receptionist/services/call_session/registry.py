"""In-memory registry of live call sessions."""
import logging
import threading
from typing import Dict, List, Optional

from receptionist.core.exceptions import DuplicateSession, SessionNotFound
from receptionist.services.call_session.models import CallSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Concurrency-safe map from call id to session.

    The lock only guards the index. Callers mutate the session object
    outside the lock and must never await while holding it.
    """

    def __init__(self):
        self._sessions: Dict[str, CallSession] = {}
        self._lock = threading.Lock()

    def create(self, session: CallSession) -> CallSession:
        """Register a new session, failing if the id is already present."""
        with self._lock:
            if session.call_sid in self._sessions:
                raise DuplicateSession(session.call_sid)
            self._sessions[session.call_sid] = session
        return session

    def get(self, call_sid: str) -> CallSession:
        """Get a live session or raise SessionNotFound."""
        with self._lock:
            session = self._sessions.get(call_sid)
        if session is None:
            raise SessionNotFound(call_sid)
        return session

    def find(self, call_sid: str) -> Optional[CallSession]:
        with self._lock:
            return self._sessions.get(call_sid)

    def contains(self, call_sid: str) -> bool:
        with self._lock:
            return call_sid in self._sessions

    def is_live(self, session: CallSession) -> bool:
        """True while this exact session object is still registered."""
        with self._lock:
            return self._sessions.get(session.call_sid) is session

    def remove(self, call_sid: str) -> Optional[CallSession]:
        """Remove and return a session. Removing an unknown id is a no-op."""
        with self._lock:
            return self._sessions.pop(call_sid, None)

    def discard(self, session: CallSession) -> bool:
        """Remove this exact session object if it is still registered."""
        with self._lock:
            if self._sessions.get(session.call_sid) is session:
                del self._sessions[session.call_sid]
                return True
        return False

    def snapshot(self) -> List[CallSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
