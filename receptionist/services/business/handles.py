"""Business session handle store."""
import logging
import secrets
import threading
from typing import Dict, List, Optional

from receptionist.core.clock import Clock, SystemClock
from receptionist.services.business.models import BusinessSessionHandle, PersonaContext

logger = logging.getLogger(__name__)


def most_recent_active(
    handles: List[BusinessSessionHandle], now: float, active_window: float
) -> Optional[BusinessSessionHandle]:
    """Pick the newest handle created within ``active_window`` seconds.

    Known limitation: this fallback assumes one operator is trialling at a
    time. Two operators finishing setup close together can receive each
    other's calls, there is no tenant isolation on this path.
    """
    cutoff = now - active_window
    candidates = [h for h in handles if h.created_at > cutoff]
    if not candidates:
        return None
    return max(candidates, key=lambda h: h.created_at)


class BusinessSessionStore:
    """In-memory store of setup-time session handles."""

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        active_window_seconds: float = 1800.0,
        clock: Optional[Clock] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.active_window_seconds = active_window_seconds
        self.clock = clock or SystemClock()
        self._handles: Dict[str, BusinessSessionHandle] = {}
        self._routes: Dict[str, str] = {}
        self._lock = threading.Lock()

    def create(
        self, persona: PersonaContext, routing_key: Optional[str] = None
    ) -> BusinessSessionHandle:
        """Register a persona and return its handle."""
        handle = BusinessSessionHandle(
            session_id=secrets.token_urlsafe(16),
            persona=persona,
            created_at=self.clock.now(),
            routing_key=routing_key,
        )
        with self._lock:
            self._handles[handle.session_id] = handle
            if routing_key:
                self._routes[routing_key] = handle.session_id
            active = len(self._handles)
        logger.info(
            f"[SESSION CREATED] ID: {handle.session_id}, "
            f"Business: {persona.business_name} ({persona.business_type}), "
            f"Active sessions: {active}"
        )
        return handle

    def get(self, session_id: str) -> Optional[BusinessSessionHandle]:
        """Get a handle if it exists and has not outlived its TTL."""
        with self._lock:
            handle = self._handles.get(session_id)
        if handle is None or self._is_stale(handle):
            return None
        return handle

    def resolve(self, routing_key: Optional[str] = None) -> Optional[BusinessSessionHandle]:
        """Find the handle an inbound call belongs to.

        An explicit routing key (the dialled number) wins; otherwise the
        most recently created unexpired handle is used.
        """
        with self._lock:
            mapped = self._routes.get(routing_key) if routing_key else None
            handle = self._handles.get(mapped) if mapped else None
            snapshot = list(self._handles.values())

        if handle is not None and not self._is_stale(handle):
            logger.info(f"[SESSION LOOKUP] Found mapped session for {routing_key}: {handle.session_id}")
            return handle

        handle = most_recent_active(snapshot, self.clock.now(), self.active_window_seconds)
        logger.info(
            f"[SESSION LOOKUP] No mapping for {routing_key}, using most recent session: "
            f"{handle.session_id if handle else None}"
        )
        return handle

    def sweep(self) -> int:
        """Drop handles older than the TTL. Returns how many were removed."""
        cutoff = self.clock.now() - self.ttl_seconds
        removed = 0
        with self._lock:
            for session_id, handle in list(self._handles.items()):
                if handle.created_at < cutoff:
                    del self._handles[session_id]
                    removed += 1
                    logger.info(
                        f"[REAPER] Cleaning up old session: {session_id} "
                        f"for business: {handle.persona.business_name}"
                    )
            for key, session_id in list(self._routes.items()):
                if session_id not in self._handles:
                    del self._routes[key]
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def _is_stale(self, handle: BusinessSessionHandle) -> bool:
        return handle.created_at < self.clock.now() - self.ttl_seconds
