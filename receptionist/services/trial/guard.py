"""Free trial quota enforcement."""
import logging
import threading
from enum import Enum
from typing import Optional, Set

from receptionist.core.clock import Clock, SystemClock
from receptionist.services.call_session.models import CallSession

logger = logging.getLogger(__name__)


class TrialDecision(str, Enum):
    """Result of a trial reservation attempt."""

    ALLOWED = "allowed"
    ALREADY_USED = "already_used"

    def __str__(self) -> str:
        return self.value


class TrialQuotaGuard:
    """One free call per caller identity plus a per-call time budget."""

    def __init__(
        self,
        enabled: bool = False,
        budget_seconds: float = 180.0,
        clock: Optional[Clock] = None,
    ):
        self.enabled = enabled
        self.budget_seconds = budget_seconds
        self.clock = clock or SystemClock()
        self._ledger: Set[str] = set()
        self._lock = threading.Lock()

    def check_and_reserve(self, caller: str) -> TrialDecision:
        """Atomically admit a caller and record the trial as used."""
        if not self.enabled:
            return TrialDecision.ALLOWED
        with self._lock:
            if caller in self._ledger:
                logger.info(f"[TRIAL] Trial already used by {caller}")
                return TrialDecision.ALREADY_USED
            self._ledger.add(caller)
        logger.info(f"[TRIAL] Trial reserved for {caller}")
        return TrialDecision.ALLOWED

    def has_used_trial(self, caller: str) -> bool:
        with self._lock:
            return caller in self._ledger

    def elapsed(self, session: CallSession) -> float:
        """Seconds since the call started."""
        return self.clock.now() - session.started_at

    def remaining(self, session: CallSession) -> float:
        return max(0.0, self.budget_seconds - self.elapsed(session))

    def is_expired(self, session: CallSession) -> bool:
        """True once the call has used its whole budget.

        The budget applies whether or not the one-trial-per-caller ledger
        is enforced.
        """
        return self.elapsed(session) >= self.budget_seconds
