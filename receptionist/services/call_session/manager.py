"""Call session manager."""
import logging
import threading
from typing import Optional

from receptionist.core.clock import Clock, SystemClock
from receptionist.services.agent.turns import TurnProcessor
from receptionist.services.business.handles import BusinessSessionStore
from receptionist.services.call_session.models import (
    Admission,
    AdmissionStatus,
    CallSession,
    TurnResult,
    Utterance,
)
from receptionist.services.call_session.registry import SessionRegistry
from receptionist.services.language.catalog import LanguageCatalog
from receptionist.services.persistence.conversations import ConversationRecorder
from receptionist.services.trial.guard import TrialDecision, TrialQuotaGuard

logger = logging.getLogger(__name__)


class CallSessionManager:
    """Manages call sessions and drives turns for both transport bindings."""

    def __init__(
        self,
        registry: SessionRegistry,
        business_sessions: BusinessSessionStore,
        trial_guard: TrialQuotaGuard,
        turn_processor: TurnProcessor,
        catalog: LanguageCatalog,
        recorder: Optional[ConversationRecorder] = None,
        clock: Optional[Clock] = None,
    ):
        self.registry = registry
        self.business_sessions = business_sessions
        self.trial_guard = trial_guard
        self.turn_processor = turn_processor
        self.catalog = catalog
        self.recorder = recorder
        self.clock = clock or SystemClock()
        self._admission_lock = threading.Lock()

    def admit_call(
        self, call_sid: str, caller: str, destination: Optional[str] = None
    ) -> Admission:
        """Handle a "call started" event.

        Duplicate detection, trial reservation and session creation happen
        under one lock so neither a repeated start event nor two concurrent
        calls from the same caller can produce a second admission.
        """
        with self._admission_lock:
            if self.registry.contains(call_sid):
                logger.info(f"[CALL DUPLICATE] CallSid {call_sid} already being processed, ignoring")
                return Admission(status=AdmissionStatus.DUPLICATE)

            if self.trial_guard.enabled and self.trial_guard.has_used_trial(caller):
                logger.info(f"[CALL REJECTED] Trial already used by {caller}")
                return self._rejection(AdmissionStatus.TRIAL_USED)

            handle = self.business_sessions.resolve(destination)
            if handle is None:
                logger.info(f"[CALL REJECTED] No active business session for CallSid {call_sid}")
                return self._rejection(AdmissionStatus.NO_PERSONA)

            if self.trial_guard.check_and_reserve(caller) is TrialDecision.ALREADY_USED:
                return self._rejection(AdmissionStatus.TRIAL_USED)

            persona = handle.persona
            session = CallSession(
                call_sid=call_sid,
                caller=caller,
                destination=destination,
                persona=persona,
                started_at=self.clock.now(),
                active_language=self.catalog.primary_language(persona.languages),
            )
            self.registry.create(session)

        logger.info(
            f"[CALL CONNECTED] CallSid: {call_sid}, Business: {persona.business_name}, "
            f"Session: {handle.session_id}, Language: {session.active_language}, "
            f"Concurrent calls: {len(self.registry)}"
        )
        return Admission(
            status=AdmissionStatus.ADMITTED,
            session=session,
            greeting=self.greeting(session),
        )

    def greeting(self, session: CallSession) -> Utterance:
        """Opening line in the business's primary language."""
        persona = session.persona
        if persona.greeting_message.strip():
            voice = self.catalog.voice_config(session.active_language)
            return Utterance(
                text=persona.greeting_message.strip(),
                language=voice.language,
                voice=voice.voice,
            )
        return self.turn_processor.speak(session, "greeting", business_name=persona.business_name)

    def _rejection(self, status: AdmissionStatus) -> Admission:
        key = "trial_used" if status is AdmissionStatus.TRIAL_USED else "no_persona"
        voice = self.catalog.voice_config(self.catalog.default.code)
        return Admission(
            status=status,
            greeting=Utterance(
                text=self.catalog.phrase(voice.language, key),
                language=voice.language,
                voice=voice.voice,
            ),
        )

    def get_session(self, call_sid: str) -> CallSession:
        """Get a live session. Raises SessionNotFound."""
        return self.registry.get(call_sid)

    async def handle_utterance(
        self,
        call_sid: str,
        text: Optional[str],
        detected_language: Optional[str] = None,
    ) -> TurnResult:
        """Run one caller turn. Raises SessionNotFound for unknown calls."""
        session = self.registry.get(call_sid)
        result = await self.turn_processor.handle_turn(session, text, detected_language)
        if result.end_call:
            await self.end_call(call_sid, "trial_expired", session=session)
        return result

    def mark_disconnected(self, call_sid: str) -> None:
        """Flag a session whose transport went away, for the reaper."""
        session = self.registry.find(call_sid)
        if session is not None:
            session.connection_closed = True

    async def end_call(
        self, call_sid: str, reason: str, session: Optional[CallSession] = None
    ) -> Optional[CallSession]:
        """Remove a session and log the finished call. Safe to call twice."""
        if session is not None:
            removed = session if self.registry.discard(session) else None
        else:
            removed = self.registry.remove(call_sid)
        if removed is None:
            return None

        removed.connection_closed = True
        logger.info(
            f"[CALL END] CallSid: {call_sid}, Business: {removed.persona.business_name}, "
            f"Duration: {self.trial_guard.elapsed(removed):.1f}s, Reason: {reason}, "
            f"Active calls remaining: {len(self.registry)}"
        )
        await self.record(removed, reason)
        return removed

    async def record(self, session: CallSession, reason: str) -> None:
        if self.recorder is not None:
            await self.recorder.record(session, reason, self.clock.now())
