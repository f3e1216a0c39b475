"""Unit tests for the trial quota guard."""
from concurrent.futures import ThreadPoolExecutor

from receptionist.core.clock import FakeClock
from receptionist.services.call_session.models import CallSession
from receptionist.services.trial.guard import TrialDecision, TrialQuotaGuard


def make_session(persona, started_at):
    return CallSession(
        call_sid="CA_trial",
        caller="+31600000001",
        persona=persona,
        started_at=started_at,
        active_language="nl-NL",
    )


class TestTrialQuotaGuard:
    """Test one trial per caller and the per-call budget."""

    def test_disabled_always_allows(self):
        guard = TrialQuotaGuard(enabled=False)

        for _ in range(3):
            assert guard.check_and_reserve("+31600000001") is TrialDecision.ALLOWED
        assert guard.has_used_trial("+31600000001") is False

    def test_enabled_allows_once(self):
        guard = TrialQuotaGuard(enabled=True)

        assert guard.check_and_reserve("+31600000001") is TrialDecision.ALLOWED
        assert guard.check_and_reserve("+31600000001") is TrialDecision.ALREADY_USED
        assert guard.check_and_reserve("+31600000002") is TrialDecision.ALLOWED
        assert guard.has_used_trial("+31600000001") is True

    def test_concurrent_reservations_admit_one(self):
        guard = TrialQuotaGuard(enabled=True)

        with ThreadPoolExecutor(max_workers=16) as pool:
            decisions = list(pool.map(lambda _: guard.check_and_reserve("+31600000001"), range(64)))

        assert decisions.count(TrialDecision.ALLOWED) == 1
        assert decisions.count(TrialDecision.ALREADY_USED) == 63

    def test_budget(self, persona):
        clock = FakeClock()
        guard = TrialQuotaGuard(enabled=False, budget_seconds=180, clock=clock)
        session = make_session(persona, clock.now())

        clock.advance(179)
        assert guard.is_expired(session) is False
        assert guard.remaining(session) == 1

        clock.advance(1)
        assert guard.is_expired(session) is True
        assert guard.remaining(session) == 0
