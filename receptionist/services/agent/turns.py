"""Turn processor: one caller utterance in, the next spoken legs out."""
import logging
from typing import List, Optional

from receptionist.core.clock import Clock, SystemClock
from receptionist.core.exceptions import CompletionError, CompletionTimeout
from receptionist.services.agent.completion import CompletionClient
from receptionist.services.agent.prompt import get_voice_instructions
from receptionist.services.call_session.models import (
    CallSession,
    LanguageSwitch,
    Turn,
    TurnResult,
    Utterance,
)
from receptionist.services.call_session.registry import SessionRegistry
from receptionist.services.language.catalog import LanguageCatalog
from receptionist.services.language.directives import parse_directive
from receptionist.services.language.handoff import HandoffController
from receptionist.services.language.policy import LanguagePolicy
from receptionist.services.speech.sanitizer import sanitize_for_speech
from receptionist.services.trial.guard import TrialQuotaGuard

logger = logging.getLogger(__name__)


class TurnProcessor:
    """Runs one conversational turn against the remote completion."""

    def __init__(
        self,
        completion_client: CompletionClient,
        catalog: LanguageCatalog,
        policy: LanguagePolicy,
        handoff: HandoffController,
        trial_guard: TrialQuotaGuard,
        registry: SessionRegistry,
        completion_timeout: float = 10.0,
        clock: Optional[Clock] = None,
    ):
        self.completion_client = completion_client
        self.catalog = catalog
        self.policy = policy
        self.handoff = handoff
        self.trial_guard = trial_guard
        self.registry = registry
        self.completion_timeout = completion_timeout
        self.clock = clock or SystemClock()

    def speak(self, session: CallSession, key: str, **values: str) -> Utterance:
        """A catalogued phrase in the session's active language."""
        voice = self.catalog.voice_config(session.active_language)
        return Utterance(
            text=self.catalog.phrase(voice.language, key, **values),
            language=voice.language,
            voice=voice.voice,
        )

    def closing_result(self, session: CallSession, utterances: Optional[List[Utterance]] = None) -> TurnResult:
        legs = list(utterances or [])
        legs.append(self.speak(session, "closing"))
        logger.info(
            f"[CALL END] CallSid: {session.call_sid}, Reason: Trial time limit reached, "
            f"Duration: {self.trial_guard.elapsed(session):.1f}s"
        )
        return TurnResult(utterances=legs, end_call=True)

    async def handle_turn(
        self,
        session: CallSession,
        caller_utterance: Optional[str],
        detected_language: Optional[str] = None,
    ) -> TurnResult:
        """Produce the outgoing legs for one caller turn.

        Failures of the remote completion are recoverable: the caller hears
        a filler or an apology and the session stays open.
        """
        session.last_activity_at = self.clock.now()

        if self.trial_guard.is_expired(session):
            return self.closing_result(session)

        text = (caller_utterance or "").strip()
        if not text:
            logger.info(f"[TURN] CallSid: {session.call_sid}, empty utterance, asking to repeat")
            return TurnResult(utterances=[self.speak(session, "repeat")])

        streak_before = self.policy.snapshot(session)
        switch = self.policy.evaluate(session, detected_language)
        reply_language = switch.to_language if switch else session.active_language

        instructions = get_voice_instructions(
            session.persona,
            self.catalog.language_name(reply_language),
            ", ".join(entry.short_code for entry in self.catalog.entries),
        )
        turns = list(session.history) + [Turn(role="user", text=text)]

        logger.info(
            f"[TURN] CallSid: {session.call_sid}, Text: '{text[:200]}', "
            f"Detected: {detected_language}, Active: {session.active_language}, "
            f"Reply language: {reply_language}"
        )

        try:
            raw_reply = await self.completion_client.complete(
                instructions, turns, timeout=self.completion_timeout
            )
        except CompletionTimeout:
            self.policy.restore(session, streak_before)
            logger.warning(f"[TURN] CallSid: {session.call_sid}, completion timed out, speaking filler")
            return TurnResult(utterances=[self.speak(session, "delay")])
        except CompletionError as e:
            self.policy.restore(session, streak_before)
            logger.error(f"[TURN] CallSid: {session.call_sid}, completion failed: {e}")
            return TurnResult(utterances=[self.speak(session, "apology")])

        if not self.registry.is_live(session):
            logger.info(f"[TURN] CallSid: {session.call_sid}, session ended during completion, discarding reply")
            return TurnResult(discarded=True)

        directive, spoken = parse_directive(raw_reply)
        if directive is not None:
            switch = self._apply_directive(session, directive.language, switch)

        spoken_text = sanitize_for_speech(spoken)
        if not spoken_text:
            spoken_text = self.catalog.phrase(
                switch.to_language if switch else session.active_language, "apology"
            )

        # History keeps the model's own wording, directive included
        session.add_turn("user", text)
        session.add_turn("assistant", raw_reply)

        if switch is not None:
            utterances = self.handoff.build(session, switch, spoken_text)
        else:
            voice = self.catalog.voice_config(session.active_language)
            utterances = [Utterance(text=spoken_text, language=voice.language, voice=voice.voice)]

        if self.trial_guard.is_expired(session):
            result = self.closing_result(session, utterances)
            result.language_switch = switch
            return result

        return TurnResult(utterances=utterances, language_switch=switch)

    def _apply_directive(
        self,
        session: CallSession,
        requested: str,
        switch: Optional[LanguageSwitch],
    ) -> Optional[LanguageSwitch]:
        """An explicit request overrides whatever the streak decided."""
        forced = self.policy.force_switch(session, requested)
        if forced is not None:
            return forced
        if self.catalog.matches(session.active_language, requested):
            return None
        return switch
