"""Background sweep of abandoned sessions."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from receptionist.core.clock import Clock, SystemClock
from receptionist.services.business.handles import BusinessSessionStore
from receptionist.services.call_session.models import CallSession
from receptionist.services.call_session.registry import SessionRegistry

logger = logging.getLogger(__name__)

EvictCallback = Callable[[CallSession, str], Awaitable[None]]


class SweepReport(BaseModel):
    """What one sweep removed."""

    business_sessions: int = 0
    disconnected_calls: int = 0
    idle_calls: int = 0


class SessionReaper:
    """Periodically evicts expired business handles and abandoned calls.

    A sweep only removes a call session if the exact object it inspected is
    still registered, so it is idempotent and can run alongside live turns.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        business_sessions: BusinessSessionStore,
        idle_timeout_seconds: float = 900.0,
        interval_seconds: float = 600.0,
        on_evict: Optional[EvictCallback] = None,
        clock: Optional[Clock] = None,
    ):
        self.registry = registry
        self.business_sessions = business_sessions
        self.idle_timeout_seconds = idle_timeout_seconds
        self.interval_seconds = interval_seconds
        self.on_evict = on_evict
        self.clock = clock or SystemClock()
        self._task: Optional[asyncio.Task] = None

    async def sweep(self) -> SweepReport:
        """Run one eviction pass."""
        report = SweepReport(business_sessions=self.business_sessions.sweep())
        now = self.clock.now()

        for session in self.registry.snapshot():
            if session.connection_closed:
                reason = "disconnected"
            elif now - session.last_activity_at >= self.idle_timeout_seconds:
                reason = "idle"
            else:
                continue

            if not self.registry.discard(session):
                continue

            if reason == "disconnected":
                report.disconnected_calls += 1
            else:
                report.idle_calls += 1
            logger.info(f"[REAPER] Evicted call {session.call_sid}, Reason: {reason}")
            if self.on_evict is not None:
                await self.on_evict(session, reason)

        if report.business_sessions or report.disconnected_calls or report.idle_calls:
            logger.info(
                f"[REAPER] Sweep removed {report.business_sessions} business sessions, "
                f"{report.disconnected_calls} disconnected calls, {report.idle_calls} idle calls"
            )
        return report

    async def run(self) -> None:
        """Sweep forever at the configured interval."""
        while True:
            await self.clock.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"[REAPER] Sweep failed: {type(e).__name__}: {str(e)}", exc_info=True)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
